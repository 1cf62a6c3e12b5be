"""
Domain exceptions for the file gateway.

Routes translate these into HTTP responses; services never raise HTTPException.
"""
from typing import Optional


class FileGatewayError(Exception):
    """Base class for all gateway errors."""


class InvalidContentError(FileGatewayError):
    """Raised when the sniffed content type is unknown or not allow-listed."""

    def __init__(self, detected_mime: Optional[str], declared_mime: Optional[str] = None):
        self.detected_mime = detected_mime
        self.declared_mime = declared_mime
        super().__init__(
            f"Content type '{detected_mime or 'unknown'}' is not allowed "
            f"(declared: '{declared_mime or 'none'}')"
        )


class RangeNotSatisfiableError(FileGatewayError):
    """Raised when a Range header cannot be served against the object size."""

    def __init__(self, range_header: str, total_size: int, reason: str = "range not satisfiable"):
        self.range_header = range_header
        self.total_size = total_size
        self.reason = reason
        super().__init__(f"{reason}: '{range_header}' (object size {total_size})")


class ObjectNotFoundError(FileGatewayError):
    """Raised when an object is absent from the store."""

    def __init__(self, object_key: str):
        self.object_key = object_key
        super().__init__(f"Object not found: {object_key}")


class StorageError(FileGatewayError):
    """Raised when an object-store operation fails for any reason other than absence."""

    def __init__(self, operation: str, object_key: Optional[str] = None, cause: Optional[Exception] = None):
        self.operation = operation
        self.object_key = object_key
        self.cause = cause
        target = f" for {object_key}" if object_key else ""
        super().__init__(f"Storage {operation} failed{target}: {cause}")


class OversizeUploadError(FileGatewayError):
    """Raised when an upload exceeds the configured ceiling."""

    def __init__(self, size_bytes: int, max_bytes: int):
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(f"Upload of {size_bytes} bytes exceeds the {max_bytes} byte limit")
