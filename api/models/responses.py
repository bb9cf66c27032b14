"""Pydantic response models for the mapping API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class FieldInfo(BaseModel):
    """Analyzed source field."""

    name: str
    normalized_name: str
    semantic_category: str
    semantic_subtype: str
    inferred_type: str
    sample_values: List[str]
    is_finance_related: bool


class CollectionAnalysisResponse(BaseModel):
    """Response model for collection analysis."""

    collection_id: str
    document_count: int
    sample_size: int
    fields: List[FieldInfo]
    sample_documents: List[Dict[str, Any]]


class MappingPreviewResponse(BaseModel):
    """Response model for a mapping dry run."""

    analysis: CollectionAnalysisResponse
    mapping: Dict[str, Any]
    records: Dict[str, List[Dict[str, Any]]]


class CollectionListResponse(BaseModel):
    business_id: str
    collections: List[str]


class UploadResponse(BaseModel):
    collection_id: str
    documents_added: int


class MigrationResponse(BaseModel):
    """Response model for a full migration run."""

    business_id: str
    total_collections: int
    processed_collections: int
    failed_collections: int
    total_records_processed: int
    total_records_inserted: int
    success_rate: float
    processing_time: float
    results: List[Dict[str, Any]]
    logs: List[Dict[str, Any]]


class TableSchema(BaseModel):
    name: str
    description: str
    columns: List[str]
    primary_key: Optional[str] = None
    natural_key: Optional[str] = None
    required_fields: List[str]


class SchemaResponse(BaseModel):
    """Response model for the target catalog."""

    tables: List[TableSchema]
