"""Data models for collection analysis."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class FieldDescriptor:
    """What the analyzer learned about one source field"""

    name: str
    normalized_name: str
    semantic_category: str
    semantic_subtype: str
    inferred_type: str  # date, numeric, email, phone, boolean, text, unknown
    sample_values: Tuple[str, ...] = ()
    is_finance_related: bool = False

    @property
    def is_categorized(self) -> bool:
        return self.semantic_category != "unknown"

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            "name": self.name,
            "normalized_name": self.normalized_name,
            "semantic_category": self.semantic_category,
            "semantic_subtype": self.semantic_subtype,
            "inferred_type": self.inferred_type,
            "sample_values": list(self.sample_values),
            "is_finance_related": self.is_finance_related,
        }


@dataclass
class CollectionAnalysis:
    """Input to classification; never persisted"""

    collection_id: str
    document_count: int
    sample_size: int
    fields: List[FieldDescriptor]
    sample_documents: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str):
        for descriptor in self.fields:
            if descriptor.name == name:
                return descriptor
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary (sample documents are stringified for JSON safety)"""
        return {
            "collection_id": self.collection_id,
            "document_count": self.document_count,
            "sample_size": self.sample_size,
            "fields": [f.to_dict() for f in self.fields],
            "sample_documents": [
                {k: (v if isinstance(v, (str, int, float, bool)) or v is None else str(v))
                 for k, v in doc.items()}
                for doc in self.sample_documents
            ],
        }
