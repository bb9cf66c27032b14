from datamapper.storage.base import DocumentStore, StoreError, TargetStore
from datamapper.storage.factory import get_document_store, get_target_store
from datamapper.storage.memory import InMemoryDocumentStore, InMemoryTargetStore

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "InMemoryTargetStore",
    "StoreError",
    "TargetStore",
    "get_document_store",
    "get_target_store",
]
