"""Data models for schema mapping results."""

from dataclasses import dataclass, field
from typing import List, Optional

TRANSFORM_KINDS = ("none", "date_format", "currency_format", "id_generation")


@dataclass
class FieldMapping:
    """One source field mapped to one target column"""

    source_field: str
    target_field: str
    confidence: float = 0.5
    transform_kind: str = "none"
    method: str = "llm"  # "llm" or "rule"

    def to_dict(self) -> dict:
        return {
            "source_field": self.source_field,
            "target_field": self.target_field,
            "confidence": self.confidence,
            "transform_kind": self.transform_kind,
            "method": self.method,
        }


@dataclass
class Relationship:
    related_table: str
    key: str
    relationship_type: str = "many-to-one"

    def to_dict(self) -> dict:
        return {
            "related_table": self.related_table,
            "relationship_type": self.relationship_type,
            "key": self.key,
        }


@dataclass
class TableMapping:
    """Mapping of a collection's fields onto one target table"""

    table_name: str
    confidence: float
    field_mappings: List[FieldMapping] = field(default_factory=list)
    relationships: List[Relationship] = field(default_factory=list)
    reasoning: str = ""

    def get_source_for(self, target_field: str) -> Optional[str]:
        for mapping in self.field_mappings:
            if mapping.target_field == target_field:
                return mapping.source_field
        return None

    def to_dict(self) -> dict:
        return {
            "table_name": self.table_name,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "field_mappings": [m.to_dict() for m in self.field_mappings],
            "relationships": [r.to_dict() for r in self.relationships],
        }


@dataclass
class UnmappedField:
    field_name: str
    reason: str
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "field_name": self.field_name,
            "reason": self.reason,
            "suggestions": list(self.suggestions),
        }


@dataclass
class MappingResult:
    """Output of classification for one collection"""

    tables: List[TableMapping] = field(default_factory=list)
    unmapped_fields: List[UnmappedField] = field(default_factory=list)
    method: str = "llm"  # "llm" or "rule"
    model: Optional[str] = None

    @property
    def table_names(self) -> List[str]:
        return [t.table_name for t in self.tables]

    def get_table(self, table_name: str) -> Optional[TableMapping]:
        for table in self.tables:
            if table.table_name == table_name:
                return table
        return None

    def to_dict(self) -> dict:
        return {
            "tables": [t.to_dict() for t in self.tables],
            "unmapped_fields": [u.to_dict() for u in self.unmapped_fields],
            "method": self.method,
            "model": self.model,
        }
