"""
Structured JSON logging for the gateway.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- object_key
- size_bytes
- duration_ms

Usage:
    from app.utils.logging import configure_logging, log_file_uploaded

    configure_logging('media-gateway', 'INFO')
    log_file_uploaded(logger, object_key='2026-10-18/images/...', size_bytes=1024)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Console handler (for container logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    object_key: Optional[str] = None,
    size_bytes: Optional[int] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        object_key: Optional object key
        size_bytes: Optional byte count
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if object_key:
        extra["object_key"] = object_key
    if size_bytes is not None:
        extra["size_bytes"] = size_bytes
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


def log_file_uploaded(
    logger: logging.Logger,
    object_key: str,
    size_bytes: int,
    mimetype: Optional[str] = None,
    category: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a stored upload.

    Args:
        logger: Logger instance
        object_key: Minted object key (required)
        size_bytes: Upload size (required)
        mimetype: Sniffed MIME type
        category: Key category
        duration_ms: Optional duration in milliseconds
    """
    extra = _build_log_extra(
        event="file_uploaded",
        object_key=object_key,
        size_bytes=size_bytes,
        duration_ms=duration_ms,
        **kwargs
    )
    if mimetype:
        extra["mimetype"] = mimetype
    if category:
        extra["category"] = category

    logger.info(f"File uploaded successfully: {object_key}", extra=extra)


def log_upload_rejected(
    logger: logging.Logger,
    reason: str,
    declared_name: Optional[str] = None,
    detail: Optional[str] = None,
    **kwargs
):
    """Log an upload refused before reaching the object store."""
    extra = _build_log_extra(event="upload_rejected", reason=reason, **kwargs)
    if declared_name:
        extra["declared_name"] = declared_name
    if detail:
        extra["detail"] = detail

    logger.warning(f"Upload rejected ({reason}): {declared_name}", extra=extra)


def log_file_served(
    logger: logging.Logger,
    object_key: str,
    size_bytes: int,
    partial: bool,
    content_range: Optional[str] = None,
    **kwargs
):
    """
    Log a stream opened for a download or ranged read.

    Args:
        logger: Logger instance
        object_key: Object being served (required)
        size_bytes: Bytes that will be served (required)
        partial: Whether this is a ranged read
        content_range: Content-Range value for ranged reads
    """
    extra = _build_log_extra(
        event="file_served",
        object_key=object_key,
        size_bytes=size_bytes,
        partial=partial,
        **kwargs
    )
    if content_range:
        extra["content_range"] = content_range

    logger.info(f"File stream generated successfully: {object_key}", extra=extra)


def log_file_deleted(logger: logging.Logger, object_key: str, **kwargs):
    """Log an object removal."""
    extra = _build_log_extra(event="file_deleted", object_key=object_key, **kwargs)
    logger.info(f"File deleted successfully: {object_key}", extra=extra)


def log_accounting_failure(
    logger: logging.Logger,
    operation: str,
    object_key: str,
    error: str,
    include_traceback: bool = True,
    **kwargs
):
    """
    Log a failed accounting write. Accounting is best effort, so this is
    the only trace such failures leave.

    Args:
        logger: Logger instance
        operation: Ledger operation (record_upload, record_access)
        object_key: Object the write was for
        error: Error message
        include_traceback: Whether to include stack trace (default: True)
    """
    extra = _build_log_extra(
        event="accounting_failed",
        object_key=object_key,
        operation=operation,
        error=str(error),
        **kwargs
    )
    message = f"Accounting {operation} failed for {object_key} - {error}"

    if include_traceback and sys.exc_info()[0] is not None:
        logger.error(message, extra=extra, exc_info=sys.exc_info())
    else:
        logger.error(message, extra=extra)


# Convenience alias
def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
