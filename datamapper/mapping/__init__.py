"""Table detection and field mapping."""

from datamapper.mapping.classifier import SchemaClassifier
from datamapper.mapping.model import (
    FieldMapping,
    MappingResult,
    Relationship,
    TableMapping,
    UnmappedField,
)
from datamapper.mapping.rule_engine import RuleEngine

__all__ = [
    "FieldMapping",
    "MappingResult",
    "Relationship",
    "RuleEngine",
    "SchemaClassifier",
    "TableMapping",
    "UnmappedField",
]
