"""Result types for a migration run."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class RecordError:
    """A single record (or whole batch) that could not be processed"""

    table: str
    error: str
    error_type: str
    index: Optional[int] = None
    record: Optional[Dict[str, Any]] = None

    def to_dict(self) -> dict:
        result = {
            "table": self.table,
            "error": self.error,
            "error_type": self.error_type,
        }
        if self.index is not None:
            result["index"] = self.index
        return result


@dataclass
class BatchOutcome:
    table: str
    batch_index: int
    size: int
    inserted: int = 0
    updated: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class TableOutcome:
    """Counts for one table within one collection"""

    table: str
    transformed: int = 0
    clean: int = 0
    inserted: int = 0
    updated: int = 0
    invalid: int = 0
    duplicates: int = 0
    errors: List[RecordError] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        result = {
            "table": self.table,
            "transformed": self.transformed,
            "clean": self.clean,
            "inserted": self.inserted,
            "updated": self.updated,
            "invalid": self.invalid,
            "duplicates": self.duplicates,
            "errors": [e.to_dict() for e in self.errors],
        }
        if self.details:
            result["details"] = dict(self.details)
        return result


@dataclass
class CollectionOutcome:
    """
    Result of one collection.

    `records_processed` counts records prepared for writing (one per product
    unit for inventory); `records_inserted` counts those written, including
    rows merged into existing entities.
    """

    collection_id: str
    success: bool = True
    documents: int = 0
    tables: List[TableOutcome] = field(default_factory=list)
    mapping: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    traceback: Optional[str] = None

    @property
    def records_processed(self) -> int:
        return sum(t.transformed for t in self.tables)

    @property
    def records_inserted(self) -> int:
        return sum(t.inserted + t.updated for t in self.tables)

    def to_dict(self) -> dict:
        result = {
            "collection_id": self.collection_id,
            "success": self.success,
            "documents": self.documents,
            "records_processed": self.records_processed,
            "records_inserted": self.records_inserted,
            "tables": [t.to_dict() for t in self.tables],
        }
        if self.mapping is not None:
            result["mapping"] = self.mapping
        if self.error:
            result["error"] = self.error
            result["traceback"] = self.traceback
        return result


@dataclass
class MigrationSummary:
    """Final report of one `migrate` run"""

    business_id: str
    total_collections: int
    processed_collections: int
    failed_collections: int
    total_records_processed: int
    total_records_inserted: int
    success_rate: float
    processing_time: float
    results: List[CollectionOutcome] = field(default_factory=list)
    logs: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "business_id": self.business_id,
            "total_collections": self.total_collections,
            "processed_collections": self.processed_collections,
            "failed_collections": self.failed_collections,
            "total_records_processed": self.total_records_processed,
            "total_records_inserted": self.total_records_inserted,
            "success_rate": self.success_rate,
            "processing_time": self.processing_time,
            "results": [r.to_dict() for r in self.results],
            "logs": list(self.logs),
        }


def compute_success_rate(inserted: int, processed: int) -> float:
    """inserted / processed as a percentage, one decimal; 0.0 when nothing was processed."""
    if processed <= 0:
        return 0.0
    return round(inserted / processed * 100, 1)
