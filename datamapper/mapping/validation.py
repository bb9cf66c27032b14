"""
Mapping validation against the target catalog.

Every mapping, whichever model or rule produced it, passes through
`validate_mapping` before anything is written. Invalid tables and columns are
reported as unmapped fields rather than dropped silently.
"""

import logging
from typing import Any, Dict, List

from datamapper.mapping.model import (
    FieldMapping,
    MappingResult,
    Relationship,
    TableMapping,
    UnmappedField,
)
from datamapper.mapping.rules import transform_kind_for
from datamapper.schema.catalog import BUSINESS_ID, is_valid_column, is_valid_table

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5


def clamp_confidence(value: Any) -> float:
    """Coerce a confidence to [0, 1]; missing or non-numeric values become 0.5."""
    if value is None or isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if number != number:  # NaN
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, number))


def _relationships(raw: Any) -> List[Relationship]:
    relationships = []
    for item in raw or []:
        if not isinstance(item, dict):
            continue
        related = item.get("related_table")
        key = item.get("key")
        if not related or not key or not is_valid_table(related):
            continue
        relationships.append(Relationship(
            related_table=related,
            key=str(key),
            relationship_type=str(item.get("relationship_type") or "many-to-one"),
        ))
    return relationships


def validate_mapping(raw: Dict[str, Any], method: str = "llm", model: str = None) -> MappingResult:
    """
    Build a MappingResult from a raw mapping dict, keeping only valid parts.

    - tables that are not dicts or lack `table_name` are discarded
    - unknown tables turn all their mappings into unmapped fields
    - mappings to unknown columns or to business_id become unmapped fields
    - tables left with no valid mapping are dropped
    """
    unmapped: List[UnmappedField] = []
    unmapped_names = set()

    def add_unmapped(name: str, reason: str, suggestions=None):
        if not name or name in unmapped_names:
            return
        unmapped_names.add(name)
        unmapped.append(UnmappedField(field_name=name, reason=reason, suggestions=list(suggestions or [])[:3]))

    tables: List[TableMapping] = []
    for entry in raw.get("tables") or []:
        if not isinstance(entry, dict) or not entry.get("table_name"):
            logger.warning(f"Discarding malformed table entry: {entry!r}")
            continue

        table_name = str(entry["table_name"])
        raw_mappings = [m for m in entry.get("field_mappings") or [] if isinstance(m, dict)]

        if not is_valid_table(table_name):
            logger.warning(f"Discarding unknown table '{table_name}'")
            for item in raw_mappings:
                add_unmapped(item.get("source_field"), f"unknown table '{table_name}'")
            continue

        valid: List[FieldMapping] = []
        used_sources = set()
        for item in raw_mappings:
            source = item.get("source_field")
            target = item.get("target_field")
            if not source or not target:
                continue
            source, target = str(source), str(target)
            if target == BUSINESS_ID:
                add_unmapped(source, "business_id is assigned by the pipeline")
                continue
            if not is_valid_column(table_name, target):
                logger.warning(f"Removing non-existent column '{target}' from table '{table_name}'")
                add_unmapped(source, f"non-existent column '{target}' in table '{table_name}'")
                continue
            if source in used_sources:
                continue
            used_sources.add(source)
            valid.append(FieldMapping(
                source_field=source,
                target_field=target,
                confidence=clamp_confidence(item.get("confidence")),
                transform_kind=transform_kind_for(target),
                method=str(item.get("method") or method),
            ))

        if not valid:
            logger.warning(f"Dropping table '{table_name}': no valid field mappings")
            continue

        tables.append(TableMapping(
            table_name=table_name,
            confidence=clamp_confidence(entry.get("confidence")),
            field_mappings=valid,
            relationships=_relationships(entry.get("relationships")),
            reasoning=str(entry.get("reasoning") or ""),
        ))

    # Fields mapped by a surviving table are no longer unmapped
    mapped_sources = {m.source_field for t in tables for m in t.field_mappings}
    unmapped = [u for u in unmapped if u.field_name not in mapped_sources]

    for item in raw.get("unmapped_fields") or []:
        if isinstance(item, dict):
            name = item.get("field_name")
            if name and name not in mapped_sources:
                add_unmapped(str(name), str(item.get("reason") or "not mapped"), item.get("suggestions"))

    return MappingResult(tables=tables, unmapped_fields=unmapped, method=method, model=model)


def revalidate(result: MappingResult) -> MappingResult:
    """Run an already-built MappingResult through the same checks."""
    return validate_mapping(result.to_dict(), method=result.method, model=result.model)
