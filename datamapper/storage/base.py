"""Abstract source and target store interfaces."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Iterator, List, Optional

Row = Dict[str, Any]


class StoreError(Exception):
    """A write could not be applied (constraint violation, unknown table, ...)."""


class DocumentStore(ABC):
    """Read access to schema-less source documents grouped in collections."""

    @abstractmethod
    def list_collections(self, prefix: str = "") -> List[str]:
        """
        List collection ids starting with `prefix`, sorted.

        Args:
            prefix: Collection id prefix (e.g. '<business_id>_')
        """
        pass

    @abstractmethod
    def count(self, collection_id: str) -> int:
        pass

    @abstractmethod
    def sample(self, collection_id: str, size: int) -> List[Row]:
        """
        Return up to `size` documents in storage order.

        Each document carries its store identifier under '_id'.
        """
        pass

    @abstractmethod
    def scan(self, collection_id: str, batch_size: int = 500) -> Iterator[Row]:
        """Iterate over every document of a collection."""
        pass

    @abstractmethod
    def insert_documents(self, collection_id: str, documents: Iterable[Row]) -> int:
        """
        Add documents to a collection (used to load spreadsheets).

        Returns:
            Number of documents added
        """
        pass


class TargetStore(ABC):
    """Row-level access to the unified relational tables."""

    @abstractmethod
    def select(
        self,
        table: str,
        filters: Optional[Row] = None,
        in_filters: Optional[Dict[str, Iterable[Any]]] = None,
    ) -> List[Row]:
        """
        Select rows matching every equality filter and every IN filter.

        Args:
            table: Target table name
            filters: column -> value equality filters
            in_filters: column -> allowed values
        """
        pass

    @abstractmethod
    def insert(self, table: str, rows: List[Row]) -> List[Row]:
        """
        Insert rows atomically.

        Returns:
            Inserted rows including store-assigned keys

        Raises:
            StoreError: If any row violates a constraint (nothing is written)
        """
        pass

    @abstractmethod
    def update(self, table: str, values: Row, key: Row) -> int:
        """
        Update rows matching `key` with `values`.

        Returns:
            Number of rows updated
        """
        pass

    @abstractmethod
    def upsert(self, table: str, rows: List[Row], conflict_key: str) -> int:
        """
        Insert rows, replacing existing rows with the same `conflict_key` value.

        Returns:
            Number of rows written
        """
        pass
