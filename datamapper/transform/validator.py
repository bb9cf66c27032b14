"""Required-field validation and in-batch deduplication of transformed records."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from datamapper.migration.outcomes import RecordError
from datamapper.schema.catalog import BUSINESS_ID, get_table

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    table: str
    clean: List[Dict[str, Any]] = field(default_factory=list)
    invalid_count: int = 0
    duplicate_count: int = 0
    errors: List[RecordError] = field(default_factory=list)


def required_fields_for(table: str) -> Tuple[str, ...]:
    spec = get_table(table)
    required = spec.required_fields if spec else ()
    return (BUSINESS_ID,) + tuple(f for f in required if f != BUSINESS_ID)


def missing_fields(table: str, record: Dict[str, Any]) -> List[str]:
    missing = []
    for name in required_fields_for(table):
        value = record.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    return missing


def _normalize_key_part(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def dedup_key(table: str, record: Dict[str, Any]) -> str:
    """Identity of a record for deduplication; the whole record when the table declares no key."""
    spec = get_table(table)
    if spec and spec.dedup_fields:
        parts = [_normalize_key_part(record.get(name)) for name in spec.dedup_fields]
    else:
        parts = sorted((k, _normalize_key_part(v)) for k, v in record.items())
    return json.dumps(parts, default=str, sort_keys=True)


class RecordValidator:
    """Drops records missing required fields, then keeps the first of each duplicate group."""

    def validate(self, table: str, records: List[Dict[str, Any]]) -> ValidationReport:
        report = ValidationReport(table=table)
        seen = set()

        for index, record in enumerate(records):
            missing = missing_fields(table, record)
            if missing:
                report.invalid_count += 1
                report.errors.append(RecordError(
                    table=table,
                    error=f"Missing required fields: {', '.join(missing)}",
                    error_type="VALIDATION_ERROR",
                    index=index,
                    record=record,
                ))
                continue

            key = dedup_key(table, record)
            if key in seen:
                report.duplicate_count += 1
                continue
            seen.add(key)
            report.clean.append(record)

        if report.invalid_count or report.duplicate_count:
            logger.info(
                f"{table}: {len(report.clean)} clean, {report.invalid_count} invalid, "
                f"{report.duplicate_count} duplicates"
            )
        return report
