"""Field analyzer: infers type and business meaning of each source field."""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from datamapper.analysis.model import CollectionAnalysis, FieldDescriptor
from datamapper.analysis.patterns import (
    INTERNAL_FIELDS,
    is_date_like,
    is_email_like,
    is_finance_field,
    is_numeric_like,
    is_phone_like,
    lookup_semantic,
    normalize_field_name,
)
from datamapper.migration.exceptions import EmptyCollectionError

logger = logging.getLogger(__name__)

MAX_SAMPLE_VALUES = 5
MAX_SAMPLE_VALUE_LENGTH = 100


def infer_data_type(value: Any) -> str:
    """
    Infer a primitive type for one value.

    Native Python types are trusted first; strings are tried against date,
    numeric, email and phone patterns in that order.
    """
    if value is None:
        return "unknown"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "numeric"
    if isinstance(value, (datetime, date)):
        return "date"

    text = str(value).strip()
    if not text:
        return "unknown"
    if is_date_like(text):
        return "date"
    if is_numeric_like(text):
        return "numeric"
    if is_email_like(text):
        return "email"
    if is_phone_like(text):
        return "phone"
    return "text"


class FieldAnalyzer:
    """Builds FieldDescriptors from a sample of documents."""

    def __init__(self, sample_size: int = 5):
        self.sample_size = sample_size

    def extract_field_info(self, sample_docs: List[Dict[str, Any]]) -> List[FieldDescriptor]:
        """
        Extract one descriptor per distinct field name, in first-seen order.

        The type is inferred from the first non-empty value seen for the field.
        """
        order: List[str] = []
        samples: Dict[str, List[str]] = {}
        types: Dict[str, str] = {}

        for doc in sample_docs[: self.sample_size]:
            for key, value in doc.items():
                if key in INTERNAL_FIELDS:
                    continue
                if key not in samples:
                    order.append(key)
                    samples[key] = []
                    types[key] = "unknown"

                if types[key] == "unknown":
                    types[key] = infer_data_type(value)

                if value is None or (isinstance(value, str) and not value.strip()):
                    continue
                if len(samples[key]) < MAX_SAMPLE_VALUES:
                    samples[key].append(str(value)[:MAX_SAMPLE_VALUE_LENGTH])

        descriptors = []
        for key in order:
            category, subtype = lookup_semantic(key)
            descriptors.append(
                FieldDescriptor(
                    name=key,
                    normalized_name=normalize_field_name(key),
                    semantic_category=category,
                    semantic_subtype=subtype,
                    inferred_type=types[key],
                    sample_values=tuple(samples[key]),
                    is_finance_related=is_finance_field(key),
                )
            )
        return descriptors

    def analyze_documents(
        self,
        collection_id: str,
        sample_docs: List[Dict[str, Any]],
        document_count: Optional[int] = None,
    ) -> CollectionAnalysis:
        """Analyze an already-fetched sample."""
        if not sample_docs:
            raise EmptyCollectionError(f"No data found in collection: {collection_id}")

        sample = list(sample_docs[: self.sample_size])
        fields = self.extract_field_info(sample)
        finance_fields = sum(1 for f in fields if f.is_finance_related)
        logger.info(
            f"Analyzed {collection_id}: {len(fields)} fields "
            f"({finance_fields} finance-related) from {len(sample)} sample documents"
        )
        return CollectionAnalysis(
            collection_id=collection_id,
            document_count=document_count if document_count is not None else len(sample_docs),
            sample_size=len(sample),
            fields=fields,
            sample_documents=sample,
        )

    def analyze_collection(self, document_store, collection_id: str) -> CollectionAnalysis:
        """
        Analyze a collection through the document store.

        Raises:
            EmptyCollectionError: If the collection holds no documents
        """
        logger.info(f"Starting analysis of collection: {collection_id}")
        total = document_store.count(collection_id)
        logger.debug(f"Found {total} total documents in {collection_id}")
        sample_docs = document_store.sample(collection_id, self.sample_size)
        return self.analyze_documents(collection_id, sample_docs, document_count=total)
