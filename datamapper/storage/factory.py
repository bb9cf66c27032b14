"""Store factory."""

from typing import Optional

from datamapper.config import get_config
from datamapper.schema.database import get_session_factory, init_database, init_document_database
from datamapper.storage.base import DocumentStore, TargetStore
from datamapper.storage.memory import InMemoryDocumentStore, InMemoryTargetStore
from datamapper.storage.sql import SQLDocumentStore, SQLTargetStore

MEMORY_URL = "memory://"


def get_document_store(database_url: Optional[str] = None) -> DocumentStore:
    """
    Get the source document store.

    Args:
        database_url: SQLAlchemy URL, or 'memory://'. Defaults to SOURCE_DATABASE_URL.
    """
    url = database_url or get_config().source_database_url
    if url == MEMORY_URL:
        return InMemoryDocumentStore()
    engine = init_document_database(url)
    return SQLDocumentStore(get_session_factory(engine))


def get_target_store(database_url: Optional[str] = None) -> TargetStore:
    """
    Get the unified target store.

    Args:
        database_url: SQLAlchemy URL, or 'memory://'. Defaults to DATABASE_URL.
    """
    url = database_url or get_config().database_url
    if url == MEMORY_URL:
        return InMemoryTargetStore()
    engine = init_database(url)
    return SQLTargetStore(get_session_factory(engine))
