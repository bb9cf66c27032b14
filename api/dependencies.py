"""FastAPI dependencies for stores and the pipeline."""

from functools import lru_cache
from typing import Optional

from datamapper.config import MigrationConfig, get_config
from datamapper.llms.llm import CompletionClient, create_completion_client
from datamapper.migration.orchestrator import PipelineOrchestrator
from datamapper.storage.base import DocumentStore, TargetStore
from datamapper.storage.factory import get_document_store, get_target_store


@lru_cache()
def get_document_store_cached() -> DocumentStore:
    """Get cached source document store."""
    return get_document_store()


@lru_cache()
def get_target_store_cached() -> TargetStore:
    """Get cached target store."""
    return get_target_store()


@lru_cache()
def get_completion_client() -> Optional[CompletionClient]:
    """
    Get the completion client.

    Returns None when no API key is configured, which leaves the rule engine
    to do all mapping.
    """
    if not get_config().llm.api_key:
        return None
    return create_completion_client()


def get_orchestrator() -> PipelineOrchestrator:
    """
    Get a pipeline orchestrator with a fresh MigrationConfig.

    Returns:
        PipelineOrchestrator instance
    """
    return PipelineOrchestrator(
        document_store=get_document_store_cached(),
        target_store=get_target_store_cached(),
        completion_client=get_completion_client(),
        migration_config=MigrationConfig.from_app_config(get_config()),
    )
