"""Custom exceptions for API."""


class InvalidBusinessIdError(Exception):
    """Raised when a business ID is malformed."""

    pass


class CollectionNotFoundError(Exception):
    """Raised when a collection does not exist or belongs to another business."""

    pass
