"""
Error taxonomy for the catalog.

Every error the application raises on purpose derives from CatalogError and
carries an HTTP status and a stable machine-readable code. The API layer
renders them uniformly as {"error": message, "code": code}.

Three families matter to callers:
- ValidationError: the request itself is wrong. Never worth retrying.
- NotFoundError: the thing isn't there (or the path was rejected - we don't
  tell the difference, so path probing learns nothing).
- StorageError: the backend failed. Logged server-side; the caller may retry
  the whole request.
"""


class CatalogError(Exception):
    """Base class for errors with a stable API representation."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code


class ValidationError(CatalogError):
    """Raised when uploaded content or request shape is invalid."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(CatalogError):
    """Raised when a requested resource does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class ObjectNotFoundError(NotFoundError):
    """
    Raised when a stored object can't be served.

    Used both for genuinely missing objects and for rejected paths.
    """

    def __init__(self, message: str = "Object not found") -> None:
        super().__init__(message)


class ItemNotFoundError(NotFoundError):
    """Raised when a catalog item doesn't exist."""

    def __init__(self, message: str = "Item not found") -> None:
        super().__init__(message)


class StorageError(CatalogError):
    """Raised when storage operations fail."""

    status_code = 500
    code = "STORAGE_ERROR"


class DirectUploadUnavailableError(CatalogError):
    """Raised when the active backend can't issue direct-write URLs."""

    status_code = 501
    code = "DIRECT_UPLOAD_UNAVAILABLE"

    def __init__(self, message: str = "Direct uploads are not available for this storage backend") -> None:
        super().__init__(message)
