"""Mapping API router."""

import io
import json
import logging
import queue
import re
import threading

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse

from api.dependencies import get_document_store_cached, get_orchestrator
from api.exceptions import CollectionNotFoundError, InvalidBusinessIdError
from api.models.responses import (
    CollectionAnalysisResponse,
    CollectionListResponse,
    MappingPreviewResponse,
    MigrationResponse,
    SchemaResponse,
    TableSchema,
    UploadResponse,
)
from datamapper.migration.orchestrator import PipelineOrchestrator
from datamapper.schema.catalog import TABLE_SPECS, get_mappable_columns
from datamapper.storage.base import DocumentStore
from datamapper.utils.loading import load_csv_collection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/mapping", tags=["mapping"])

BUSINESS_ID_PATTERN = re.compile(r"^[A-Za-z0-9-]{1,64}$")
COLLECTION_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_ -]{1,128}$")

_STREAM_DONE = object()


def validate_business_id(business_id: str) -> str:
    if not BUSINESS_ID_PATTERN.match(business_id):
        raise InvalidBusinessIdError(
            f"Invalid business ID '{business_id}': use letters, digits and '-' only"
        )
    return business_id


def check_collection(business_id: str, collection_id: str, document_store: DocumentStore) -> None:
    if not collection_id.startswith(f"{business_id}_") or document_store.count(collection_id) == 0:
        raise CollectionNotFoundError(
            f"Collection '{collection_id}' not found for business '{business_id}'"
        )


@router.get("/schema", response_model=SchemaResponse)
def get_schema():
    """
    Get the target catalog.

    Returns:
        Every target table with its mappable columns
    """
    return SchemaResponse(
        tables=[
            TableSchema(
                name=spec.table_name,
                description=spec.description,
                columns=get_mappable_columns(spec.table_name),
                primary_key=spec.primary_key,
                natural_key=spec.natural_key,
                required_fields=list(spec.required_fields),
            )
            for spec in TABLE_SPECS
        ]
    )


@router.get("/{business_id}/collections", response_model=CollectionListResponse)
def list_collections(
    business_id: str,
    document_store: DocumentStore = Depends(get_document_store_cached),
):
    """List the source collections of a business."""
    validate_business_id(business_id)
    return CollectionListResponse(
        business_id=business_id,
        collections=document_store.list_collections(prefix=f"{business_id}_"),
    )


@router.post("/{business_id}/collections/{collection_name}/upload", response_model=UploadResponse)
async def upload_collection(
    business_id: str,
    collection_name: str,
    file: UploadFile = File(..., description="CSV export of one sheet"),
    document_store: DocumentStore = Depends(get_document_store_cached),
):
    """
    Load a CSV sheet into the collection '<business_id>_<collection_name>'.

    Raises:
        HTTPException: If the CSV cannot be parsed
    """
    validate_business_id(business_id)
    if not COLLECTION_NAME_PATTERN.match(collection_name):
        raise HTTPException(status_code=400, detail=f"Invalid collection name: {collection_name}")

    content = await file.read()
    collection_id = f"{business_id}_{collection_name}"
    try:
        added = load_csv_collection(document_store, collection_id, io.BytesIO(content))
    except (ValueError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid CSV file: {str(e)}")
    return UploadResponse(collection_id=collection_id, documents_added=added)


@router.get(
    "/{business_id}/collections/{collection_id}/analysis",
    response_model=CollectionAnalysisResponse,
)
def analyze_collection(
    business_id: str,
    collection_id: str,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    """Analyze the fields of one collection."""
    validate_business_id(business_id)
    check_collection(business_id, collection_id, orchestrator.document_store)
    return orchestrator.analyze(business_id, collection_id).to_dict()


@router.post(
    "/{business_id}/collections/{collection_id}/preview",
    response_model=MappingPreviewResponse,
)
def preview_collection(
    business_id: str,
    collection_id: str,
    limit: int = Query(5, ge=1, le=50, description="Documents to transform"),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    """
    Dry-run the mapping for one collection.

    Nothing is written; the response shows the chosen tables and the records
    the first documents would become.
    """
    validate_business_id(business_id)
    check_collection(business_id, collection_id, orchestrator.document_store)
    return orchestrator.preview(business_id, collection_id, limit=limit)


@router.post("/{business_id}/migrate", response_model=MigrationResponse)
def migrate_business(
    business_id: str,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    """
    Migrate every collection of a business into the unified schema.

    Raises:
        NoCollectionsFoundError: Mapped to 404
    """
    validate_business_id(business_id)
    summary = orchestrator.migrate(business_id)
    return summary.to_dict()


def _sse(event: str, data) -> str:
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"


@router.get("/{business_id}/stream")
def stream_migration(
    business_id: str,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    """
    Migrate a business and stream progress as server-sent events.

    Emits 'progress' events while running, then one 'summary' or 'error' event.
    """
    validate_business_id(business_id)
    events: queue.Queue = queue.Queue()

    def run():
        try:
            summary = orchestrator.migrate(business_id, progress_callback=events.put)
            events.put(("summary", summary.to_dict()))
        except Exception as e:
            logger.error(f"Streaming migration for {business_id} failed: {e}", exc_info=True)
            events.put(("error", {"detail": str(e), "error_type": type(e).__name__}))
        finally:
            events.put(_STREAM_DONE)

    def event_stream():
        worker = threading.Thread(target=run, name=f"migrate-{business_id}", daemon=True)
        worker.start()
        while True:
            item = events.get()
            if item is _STREAM_DONE:
                break
            if isinstance(item, tuple):
                yield _sse(item[0], item[1])
            else:
                yield _sse("progress", item)
        worker.join()

    return StreamingResponse(event_stream(), media_type="text/event-stream")
