from datamapper.migration.exceptions import (
    ClassifierResponseError,
    EmptyCollectionError,
    HierarchyPersistenceError,
    MappingError,
    NoCollectionsFoundError,
)

__all__ = [
    "ClassifierResponseError",
    "EmptyCollectionError",
    "HierarchyPersistenceError",
    "MappingError",
    "NoCollectionsFoundError",
]
