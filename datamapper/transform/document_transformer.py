"""Document transformer: turns one source document into one record per mapped table."""

import hashlib
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from datamapper.analysis.patterns import (
    INTERNAL_FIELDS,
    is_email_like,
    is_phone_like,
    normalize_field_name,
)
from datamapper.mapping.model import TableMapping
from datamapper.migration.outcomes import RecordError
from datamapper.schema.catalog import BUSINESS_ID, get_table, is_valid_column
from datamapper.transform.coercion import clean_phone, coerce_value, is_blank

logger = logging.getLogger(__name__)

# Field name fragments that identify a contact person
CONTACT_NAME_HINTS = ("contact", "person", "poc", "representative", "agent")

# Tables whose identity is a name column but which have no natural-key upsert
NAME_COLUMNS = {"product": "product_name"}


def product_id_for(business_id: str, product_name: str, source_id: Any = None) -> str:
    """Deterministic product key for a record that carries none."""
    basis = f"{business_id}|{product_name}|{source_id if source_id is not None else ''}"
    return f"PROD_{hashlib.sha1(basis.encode('utf-8')).hexdigest()[:16]}"


class DocumentTransformer:
    """Applies a TableMapping to source documents for one business."""

    def __init__(self, business_id: str):
        self.business_id = business_id

    def transform(self, doc: Dict[str, Any], table_mapping: TableMapping) -> Optional[Dict[str, Any]]:
        """
        Transform one document for one table.

        Returns:
            The record, or None when it lacks the table's identifying name or
            holds nothing beyond business_id
        """
        table = table_mapping.table_name
        spec = get_table(table)
        record: Dict[str, Any] = {BUSINESS_ID: self.business_id}

        for mapping in table_mapping.field_mappings:
            if mapping.target_field == BUSINESS_ID:
                continue
            value = doc.get(mapping.source_field)
            if is_blank(value):
                continue
            coerced = coerce_value(mapping.target_field, value)
            if coerced is not None:
                record[mapping.target_field] = coerced

        if spec is not None and spec.contact_enhanced:
            mapped_sources = {m.source_field for m in table_mapping.field_mappings}
            self.enhance_contact(record, doc, mapped_sources, table)

        if table == "product":
            self.synthesize_product_fields(record, doc)

        name_column = spec.natural_key if spec is not None and spec.natural_key else NAME_COLUMNS.get(table)
        if name_column and is_blank(record.get(name_column)):
            logger.debug(f"Skipping {table} record without {name_column}")
            return None

        if len(record) <= 1:
            logger.debug(f"Skipping {table} record with no mapped values")
            return None
        return record

    def enhance_contact(
        self,
        record: Dict[str, Any],
        doc: Dict[str, Any],
        mapped_sources,
        table: str,
    ) -> None:
        """Fill email, phone and contact_person from fields the mapping left unused."""
        for key, value in doc.items():
            if key in INTERNAL_FIELDS or key in mapped_sources or is_blank(value):
                continue
            text = str(value).strip()

            if is_email_like(text):
                if "email" not in record and is_valid_column(table, "email"):
                    record["email"] = text.lower()
                continue
            if is_phone_like(text):
                if "phone" not in record and is_valid_column(table, "phone"):
                    record["phone"] = clean_phone(text)
                continue

            normalized = normalize_field_name(key)
            if (
                "contact_person" not in record
                and is_valid_column(table, "contact_person")
                and any(hint in normalized for hint in CONTACT_NAME_HINTS)
            ):
                record["contact_person"] = text

    def synthesize_product_fields(self, record: Dict[str, Any], doc: Dict[str, Any]) -> None:
        if "product_id" not in record and not is_blank(record.get("product_name")):
            record["product_id"] = product_id_for(
                self.business_id, record["product_name"], doc.get("_id")
            )
        if "created_date" not in record:
            record["created_date"] = datetime.now(timezone.utc).isoformat()

    def transform_documents(
        self,
        docs: List[Dict[str, Any]],
        table_mapping: TableMapping,
    ) -> Tuple[List[Dict[str, Any]], List[RecordError]]:
        """
        Transform many documents, collecting per-record failures.

        Returns:
            (records, errors); skipped documents produce neither
        """
        records: List[Dict[str, Any]] = []
        errors: List[RecordError] = []
        for index, doc in enumerate(docs):
            try:
                record = self.transform(doc, table_mapping)
            except Exception as e:
                logger.error(f"Error transforming document {index} for {table_mapping.table_name}: {e}")
                errors.append(RecordError(
                    table=table_mapping.table_name,
                    error=str(e),
                    error_type="TRANSFORM_ERROR",
                    index=index,
                ))
                continue
            if record is not None:
                records.append(record)

        logger.info(
            f"Transformed {len(records)}/{len(docs)} documents for {table_mapping.table_name}"
        )
        return records, errors
