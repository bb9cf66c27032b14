"""
Rule Engine

Deterministic table detection and field mapping, used when no completion
model produces a usable answer. Identical analyses always produce identical
mappings.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from datamapper.analysis.model import CollectionAnalysis, FieldDescriptor
from datamapper.analysis.patterns import normalize_field_name
from datamapper.mapping.model import (
    FieldMapping,
    MappingResult,
    Relationship,
    TableMapping,
    UnmappedField,
)
from datamapper.mapping.rules import (
    CATEGORY_COLUMN_MAP,
    KEYWORD_IN_COLLECTION,
    KEYWORD_IN_FIELDS,
    KEYWORD_ORDER,
    OPTIONAL_PRESENT,
    REQUIRED_MISSING,
    REQUIRED_PRESENT,
    TABLE_DETECTION_RULES,
    TableDetectionRule,
    keyword_column_hint,
    transform_kind_for,
)
from datamapper.schema.catalog import (
    BUSINESS_ID,
    FOREIGN_KEYS,
    GENERIC_TABLE,
    get_mappable_columns,
    is_valid_column,
)

logger = logging.getLogger(__name__)

EXACT_CONFIDENCE = 0.95
CATEGORY_CONFIDENCE = 0.85
SIMILARITY_CAP = 0.8
KEYWORD_CONFIDENCE = 0.7

SIMILARITY_THRESHOLD = 0.6
SUGGESTION_THRESHOLD = 0.4
MAX_SUGGESTIONS = 3


def calculate_similarity(a: str, b: str) -> float:
    """
    Similarity of two normalized names in [0, 1].

    Exact match is 1.0, containment 0.8, otherwise the Levenshtein distance
    scaled by the longer name.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    if a in b or b in a:
        return 0.8
    longer = max(len(a), len(b))
    return (longer - Levenshtein.distance(a, b)) / longer


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class RuleEngine:
    """Scores declarative table rules and maps fields onto the winning table."""

    def __init__(self, rules: Sequence[TableDetectionRule] = TABLE_DETECTION_RULES):
        self.rules = tuple(rules)

    @staticmethod
    def _is_present(semantic_field: str, fields: List[FieldDescriptor]) -> bool:
        return any(
            f.semantic_subtype == semantic_field or semantic_field in f.normalized_name
            for f in fields
        )

    def score_rule(self, rule: TableDetectionRule, analysis: CollectionAnalysis) -> int:
        score = 0
        for required in rule.required_fields:
            if self._is_present(required, analysis.fields):
                score += REQUIRED_PRESENT
            else:
                score += REQUIRED_MISSING
        for optional in rule.optional_fields:
            if self._is_present(optional, analysis.fields):
                score += OPTIONAL_PRESENT

        collection = analysis.collection_id.lower()
        field_names = [f.normalized_name for f in analysis.fields]
        for keyword in rule.keywords:
            if keyword in collection:
                score += KEYWORD_IN_COLLECTION
            if any(keyword in name for name in field_names):
                score += KEYWORD_IN_FIELDS
        return score

    def detect_table(self, analysis: CollectionAnalysis) -> Tuple[str, float, int]:
        """
        Pick the best-scoring table.

        Returns:
            (table_name, confidence, score); the generic table when no rule
            scores above zero
        """
        best_rule = None
        best_key = None
        for index, rule in enumerate(self.rules):
            score = self.score_rule(rule, analysis)
            # Higher score, then higher priority, then earlier rule
            key = (score, rule.priority, -index)
            if best_key is None or key > best_key:
                best_key = key
                best_rule = rule

        if best_rule is None or best_key[0] <= 0:
            logger.debug(f"No rule matched {analysis.collection_id}, using {GENERIC_TABLE}")
            return GENERIC_TABLE, 0.4, 0

        score = best_key[0]
        return best_rule.table, clamp(score / 30, 0.4, 0.95), score

    def map_field(self, descriptor: FieldDescriptor, table: str) -> Optional[FieldMapping]:
        """Map one field onto a column of `table`, or None if nothing fits."""
        normalized = descriptor.normalized_name
        columns = get_mappable_columns(table)

        # 1. exact column name
        if normalized in columns:
            return self._mapping(descriptor, normalized, EXACT_CONFIDENCE)

        # 2. semantic category lookup for this table
        column = self._category_column(descriptor, table)
        if column:
            return self._mapping(descriptor, column, CATEGORY_CONFIDENCE)

        # 3. string similarity
        best_column, best_score = None, 0.0
        for candidate in columns:
            score = calculate_similarity(normalized, candidate)
            if score > best_score:
                best_column, best_score = candidate, score
        if best_column and best_score >= SIMILARITY_THRESHOLD:
            return self._mapping(descriptor, best_column, min(SIMILARITY_CAP, best_score))

        # 4. keyword heuristics
        tokens = normalized.split("_")
        for keyword in KEYWORD_ORDER:
            if keyword not in tokens:
                continue
            column = keyword_column_hint(keyword, table)
            if column and is_valid_column(table, column) and column != BUSINESS_ID:
                return self._mapping(descriptor, column, KEYWORD_CONFIDENCE)
        return None

    @staticmethod
    def _category_column(descriptor: FieldDescriptor, table: str) -> Optional[str]:
        """
        Column for the field's (category, subtype) on this table.

        Subtypes like 'order' or 'price' are shared between concepts, so the
        field's own category is tried first and then the table's other
        categories in declaration order.
        """
        table_map = CATEGORY_COLUMN_MAP.get(table, {})
        categories = [descriptor.semantic_category] + [
            c for c in table_map if c != descriptor.semantic_category
        ]
        for category in categories:
            column = table_map.get(category, {}).get(descriptor.semantic_subtype)
            if column and is_valid_column(table, column) and column != BUSINESS_ID:
                return column
        return None

    @staticmethod
    def _mapping(descriptor: FieldDescriptor, column: str, confidence: float) -> FieldMapping:
        return FieldMapping(
            source_field=descriptor.name,
            target_field=column,
            confidence=round(confidence, 4),
            transform_kind=transform_kind_for(column),
            method="rule",
        )

    def suggest_columns(self, field_name: str, table: str) -> List[str]:
        """Up to three columns of `table` resembling `field_name`, best first."""
        normalized = normalize_field_name(field_name)
        scored = [
            (calculate_similarity(normalized, column), column)
            for column in get_mappable_columns(table)
        ]
        scored = [item for item in scored if item[0] > SUGGESTION_THRESHOLD]
        # Stable sort keeps catalog order among equal scores
        scored.sort(key=lambda item: item[0], reverse=True)
        return [column for _, column in scored[:MAX_SUGGESTIONS]]

    @staticmethod
    def infer_relationships(table: str, mappings: List[FieldMapping]) -> List[Relationship]:
        relationships = []
        seen = set()
        for mapping in mappings:
            related = FOREIGN_KEYS.get(mapping.target_field)
            if related and related != table and mapping.target_field not in seen:
                seen.add(mapping.target_field)
                relationships.append(Relationship(related_table=related, key=mapping.target_field))
        return relationships

    def map_collection(self, analysis: CollectionAnalysis) -> MappingResult:
        """Build a complete rule-based mapping for a collection."""
        table, confidence, score = self.detect_table(analysis)
        logger.info(
            f"Rule engine selected '{table}' for {analysis.collection_id} "
            f"(score={score}, confidence={confidence:.2f})"
        )

        mappings: List[FieldMapping] = []
        unmapped: List[UnmappedField] = []
        used_columns = set()
        for descriptor in analysis.fields:
            mapping = self.map_field(descriptor, table)
            if mapping is None:
                unmapped.append(UnmappedField(
                    field_name=descriptor.name,
                    reason=f"No matching column in table '{table}'",
                    suggestions=self.suggest_columns(descriptor.name, table),
                ))
            elif mapping.target_field in used_columns:
                unmapped.append(UnmappedField(
                    field_name=descriptor.name,
                    reason=f"Column '{mapping.target_field}' already mapped",
                    suggestions=self.suggest_columns(descriptor.name, table),
                ))
            else:
                used_columns.add(mapping.target_field)
                mappings.append(mapping)

        tables = []
        if mappings:
            tables.append(TableMapping(
                table_name=table,
                confidence=round(confidence, 4),
                field_mappings=mappings,
                relationships=self.infer_relationships(table, mappings),
                reasoning=f"Rule-based detection (score {score})",
            ))
        return MappingResult(tables=tables, unmapped_fields=unmapped, method="rule")
