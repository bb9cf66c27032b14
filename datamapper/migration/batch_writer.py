"""Batch writer: persists validated records table by table."""

import logging
from typing import Any, Dict, List

from datamapper.migration.outcomes import BatchOutcome, RecordError, TableOutcome
from datamapper.schema.catalog import BUSINESS_ID, get_table
from datamapper.storage.base import StoreError, TargetStore

logger = logging.getLogger(__name__)


def _merge_values(incoming: Dict[str, Any], protected) -> Dict[str, Any]:
    """Non-null incoming values, minus columns that must not change."""
    return {k: v for k, v in incoming.items() if v is not None and k not in protected}


class BatchWriter:
    """
    Writes records in fixed-size batches.

    Tables with a natural-name column are upserted by that name within the
    business; product rows are upserted by product_id; everything else is
    inserted. A failed batch is retried row by row so one bad record does not
    cost the whole batch.
    """

    def __init__(self, target_store: TargetStore, batch_size: int = 100):
        self.store = target_store
        self.batch_size = max(1, batch_size)

    def write(self, table: str, records: List[Dict[str, Any]]) -> TableOutcome:
        outcome = TableOutcome(table=table)
        batches: List[BatchOutcome] = []

        for batch_index, start in enumerate(range(0, len(records), self.batch_size)):
            batch = records[start:start + self.batch_size]
            result = self._write_batch(table, batch_index, batch, outcome.errors)
            batches.append(result)
            outcome.inserted += result.inserted
            outcome.updated += result.updated

        failed = [b for b in batches if not b.succeeded]
        outcome.details["batches"] = len(batches)
        outcome.details["failed_batches"] = len(failed)
        logger.info(
            f"{table}: inserted {outcome.inserted}, updated {outcome.updated}, "
            f"{len(outcome.errors)} errors in {len(batches)} batches"
        )
        return outcome

    def _write_batch(
        self,
        table: str,
        batch_index: int,
        batch: List[Dict[str, Any]],
        errors: List[RecordError],
    ) -> BatchOutcome:
        spec = get_table(table)
        result = BatchOutcome(table=table, batch_index=batch_index, size=len(batch))

        if table == "product":
            try:
                result.inserted = self.store.upsert(table, batch, conflict_key="product_id")
            except StoreError as e:
                result.error = str(e)
                errors.append(RecordError(table=table, error=str(e), error_type="BATCH_ERROR", index=batch_index))
                logger.error(f"Batch {batch_index + 1} for {table} failed: {e}")
            return result

        if spec is not None and spec.natural_key:
            to_insert = self._apply_updates(table, spec, batch, result, errors)
        else:
            to_insert = batch

        if to_insert:
            result.inserted += self._insert(table, batch_index, to_insert, result, errors)
        return result

    def _apply_updates(self, table, spec, batch, result: BatchOutcome, errors) -> List[Dict[str, Any]]:
        """Merge rows whose name already exists; return the rows still to insert."""
        name_column = spec.natural_key
        key_column = spec.primary_key
        business_id = batch[0].get(BUSINESS_ID)
        names = list(dict.fromkeys(r[name_column] for r in batch if r.get(name_column) is not None))

        try:
            existing = self.store.select(
                table, filters={BUSINESS_ID: business_id}, in_filters={name_column: names}
            )
        except StoreError as e:
            result.error = str(e)
            errors.append(RecordError(table=table, error=str(e), error_type="BATCH_ERROR", index=result.batch_index))
            return []

        existing_keys = {}
        for row in existing:
            existing_keys.setdefault(row[name_column], row[key_column])

        protected = {key_column, BUSINESS_ID, name_column}
        pending: Dict[str, Dict[str, Any]] = {}
        for record in batch:
            name = record.get(name_column)
            if name in existing_keys:
                values = _merge_values(record, protected)
                try:
                    if values:
                        self.store.update(table, values, {key_column: existing_keys[name]})
                    result.updated += 1
                except StoreError as e:
                    errors.append(RecordError(table=table, error=str(e), error_type="UPDATE_ERROR", record=record))
            elif name in pending:
                # Same name twice in one batch: folded into the row being inserted
                pending[name].update(_merge_values(record, protected))
                result.updated += 1
            else:
                row = dict(record)
                if spec.auto_increment:
                    row.pop(key_column, None)
                pending[name] = row
        return list(pending.values())

    def _insert(self, table, batch_index, rows, result: BatchOutcome, errors) -> int:
        try:
            return len(self.store.insert(table, rows))
        except StoreError as e:
            logger.warning(f"Batch {batch_index + 1} for {table} failed ({e}), retrying row by row")
            result.error = str(e)

        inserted = 0
        for index, row in enumerate(rows):
            try:
                self.store.insert(table, [row])
                inserted += 1
            except StoreError as e:
                errors.append(RecordError(
                    table=table,
                    error=str(e),
                    error_type="INSERT_ERROR",
                    index=batch_index * self.batch_size + index,
                    record=row,
                ))
        return inserted
