"""Exceptions raised by the mapping pipeline."""


class MappingError(Exception):
    """Base class for pipeline errors."""


class NoCollectionsFoundError(MappingError):
    """No source collections exist for the requested business."""

    def __init__(self, business_id: str):
        self.business_id = business_id
        super().__init__(f"No collections found for business: {business_id}")


class EmptyCollectionError(MappingError):
    """A source collection holds no documents."""


class ClassifierResponseError(MappingError):
    """A completion could not be parsed into a mapping."""

    def __init__(self, message: str, raw_response: str = ""):
        self.raw_response = raw_response
        super().__init__(message)


class HierarchyPersistenceError(MappingError):
    """Category, brand or unit records could not be written."""
