"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- upload_filename
- duration_ms

Usage:
    from direct_upload.utils.logging import configure_logging, log_upload_issued

    configure_logging('upload-api', 'INFO')
    log_upload_issued(logger, filename='abc.png', original_filename='cat.png')
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
            service_name: Service identifier (upload-api or upload-worker)
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

        # Console handler (for docker logs)
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
    filename: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        filename: Optional generated filename
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if filename:
        extra["upload_filename"] = filename
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Issuance event functions

def log_upload_issued(
    logger: logging.Logger,
    filename: str,
    original_filename: str,
    size: Optional[int] = None,
    mime_type: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log that a signed URL was handed out.

    Args:
        logger: Logger instance
        filename: Generated filename (required)
        original_filename: Name declared by the client (required)
        size: Declared size in bytes
        mime_type: Declared content type
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_issued",
        filename=filename,
        duration_ms=duration_ms,
        original_filename=original_filename,
        **kwargs
    )
    if size is not None:
        extra["size"] = size
    if mime_type:
        extra["mime_type"] = mime_type

    logger.info(f"Signed upload issued: {filename}", extra=extra)


def log_upload_rejected(
    logger: logging.Logger,
    original_filename: str,
    reason: str,
    error: Optional[str] = None,
    **kwargs
):
    """
    Log an issuance request that did not produce a signed URL.

    Args:
        logger: Logger instance
        original_filename: Name declared by the client (required)
        reason: Error kind (too_large, unsupported_type, issuance_failed)
        error: Human readable message
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_rejected",
        original_filename=original_filename,
        reason=reason,
        **kwargs
    )
    if error:
        extra["error"] = str(error)

    # Policy rejections are business outcomes, storage failures are not
    level = logging.INFO if reason in ("too_large", "unsupported_type") else logging.ERROR
    logger.log(level, f"Signed upload rejected: {original_filename} ({reason})", extra=extra)


# Confirmation event functions

def log_upload_confirmed(
    logger: logging.Logger,
    filename: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """Log that a pending upload was promoted to a completed one."""
    extra = _build_log_extra(
        event="upload_confirmed",
        filename=filename,
        duration_ms=duration_ms,
        **kwargs
    )
    logger.info(f"Upload confirmed: {filename}", extra=extra)


def log_confirmation_failed(
    logger: logging.Logger,
    filename: str,
    reason: str,
    error: Optional[str] = None,
    **kwargs
):
    """
    Log a confirmation that did not promote anything.

    Args:
        logger: Logger instance
        filename: Filename the client tried to confirm (required)
        reason: not_found, expired, object_missing or store_error
        error: Error message
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="confirmation_failed",
        filename=filename,
        reason=reason,
        **kwargs
    )
    if error:
        extra["error"] = str(error)

    message = f"Upload confirmation failed: {filename} ({reason})"

    if reason == "store_error":
        logger.error(message, extra=extra)
    else:
        logger.warning(message, extra=extra)


def log_pending_swept(
    logger: logging.Logger,
    count: int,
    duration_ms: Optional[float] = None,
    objects_deleted: Optional[int] = None,
    **kwargs
):
    """Log an expiry sweep run."""
    extra = _build_log_extra(
        event="pending_swept",
        duration_ms=duration_ms,
        count=count,
        **kwargs
    )
    if objects_deleted is not None:
        extra["objects_deleted"] = objects_deleted

    logger.info(f"Expired pending uploads swept: {count}", extra=extra)


# Convenience alias
def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
