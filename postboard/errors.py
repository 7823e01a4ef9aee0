"""
Exceptions raised by the store clients and the upload coordinator.

Each exception carries the HTTP status the route layer answers with.
"""


class PostboardError(Exception):
    """Base exception for post operations."""
    status_code = 500


class NoFileError(PostboardError):
    """A required upload was missing or empty."""
    status_code = 400


class StorageWriteError(PostboardError):
    """Object store write or reference resolution failed."""
    status_code = 500


class RecordNotFoundError(PostboardError):
    """The target post does not exist."""
    status_code = 404


class StoreOperationError(PostboardError):
    """Any other document store failure."""
    status_code = 500
