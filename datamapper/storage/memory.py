"""In-memory stores, used by tests and dry runs."""

from collections import OrderedDict
from copy import deepcopy
from typing import Any, Dict, Iterable, Iterator, List, Optional

from datamapper.schema.catalog import get_table, is_valid_table
from datamapper.storage.base import DocumentStore, Row, StoreError, TargetStore


class InMemoryDocumentStore(DocumentStore):
    def __init__(self, collections: Optional[Dict[str, List[Row]]] = None):
        self._collections: Dict[str, List[Row]] = OrderedDict()
        for collection_id, documents in (collections or {}).items():
            self.insert_documents(collection_id, documents)

    def list_collections(self, prefix: str = "") -> List[str]:
        return sorted(c for c in self._collections if c.startswith(prefix))

    def count(self, collection_id: str) -> int:
        return len(self._collections.get(collection_id, []))

    def sample(self, collection_id: str, size: int) -> List[Row]:
        return deepcopy(self._collections.get(collection_id, [])[:size])

    def scan(self, collection_id: str, batch_size: int = 500) -> Iterator[Row]:
        for document in self._collections.get(collection_id, []):
            yield deepcopy(document)

    def insert_documents(self, collection_id: str, documents: Iterable[Row]) -> int:
        stored = self._collections.setdefault(collection_id, [])
        added = 0
        for document in documents:
            document = dict(document)
            document.setdefault("_id", f"{collection_id}:{len(stored) + 1}")
            stored.append(document)
            added += 1
        return added


def _matches(row: Row, filters: Optional[Row], in_filters: Optional[Dict[str, Iterable[Any]]]) -> bool:
    for column, value in (filters or {}).items():
        if row.get(column) != value:
            return False
    for column, values in (in_filters or {}).items():
        if row.get(column) not in set(values):
            return False
    return True


class InMemoryTargetStore(TargetStore):
    """Dict-backed tables with auto-increment and primary-key checks."""

    def __init__(self):
        self.tables: Dict[str, List[Row]] = {}
        self._sequences: Dict[str, int] = {}

    def _rows(self, table: str) -> List[Row]:
        if not is_valid_table(table):
            raise StoreError(f"Unknown table: {table}")
        return self.tables.setdefault(table, [])

    def select(self, table, filters=None, in_filters=None) -> List[Row]:
        if not is_valid_table(table):
            raise StoreError(f"Unknown table: {table}")
        return [dict(row) for row in self.tables.get(table, []) if _matches(row, filters, in_filters)]

    def insert(self, table: str, rows: List[Row]) -> List[Row]:
        spec = get_table(table)
        existing = self._rows(table)
        pk = spec.primary_key if spec else None

        prepared = []
        sequence = self._sequences.get(table, 0)
        keys = {row.get(pk) for row in existing} if pk else set()
        for row in rows:
            row = dict(row)
            if pk:
                if row.get(pk) is None:
                    if not spec.auto_increment:
                        raise StoreError(f"{table}.{pk} is required")
                    sequence += 1
                    while sequence in keys:
                        sequence += 1
                    row[pk] = sequence
                if row[pk] in keys:
                    raise StoreError(f"Duplicate key {pk}={row[pk]} in {table}")
                keys.add(row[pk])
            prepared.append(row)

        self._sequences[table] = sequence
        existing.extend(prepared)
        return [dict(row) for row in prepared]

    def update(self, table: str, values: Row, key: Row) -> int:
        updated = 0
        for row in self._rows(table):
            if _matches(row, key, None):
                row.update(values)
                updated += 1
        return updated

    def upsert(self, table: str, rows: List[Row], conflict_key: str) -> int:
        existing = self._rows(table)
        index = {row.get(conflict_key): row for row in existing}
        written = 0
        for row in rows:
            current = index.get(row.get(conflict_key))
            if current is not None:
                current.update(row)
            else:
                new_row = dict(row)
                existing.append(new_row)
                index[row.get(conflict_key)] = new_row
            written += 1
        return written
