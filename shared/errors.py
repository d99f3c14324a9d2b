"""
Shared error handling for the dashboard sync layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error payload surfaced to the presentation layer."""

    code: str
    message: str
    key: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class SyncLayerException(Exception):
    """Base exception for the sync layer."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            key=self.details.get("key"),
            details=self.details
        )


class FetchError(SyncLayerException):
    """A read populating a cache key failed.

    Recorded on the cache entry as ``last_error``; never raised into read paths.
    """

    def __init__(self, key: str, cause: BaseException, details: Optional[Dict[str, Any]] = None):
        self.key = key
        self.cause = cause
        merged = {"key": key, "cause": type(cause).__name__}
        merged.update(details or {})
        super().__init__("FETCH_ERROR", f"Failed to fetch '{key}': {cause}", merged)


class WriteError(SyncLayerException):
    """A remote mutation was rejected or failed.

    Raised to the caller of an optimistic update after rollback was applied.
    """

    def __init__(self, key: str, cause: BaseException, details: Optional[Dict[str, Any]] = None):
        self.key = key
        self.cause = cause
        merged = {"key": key, "cause": type(cause).__name__}
        merged.update(details or {})
        super().__init__("WRITE_ERROR", f"Failed to write '{key}': {cause}", merged)


class NotFoundError(SyncLayerException):
    """Entity missing from a cached collection."""

    def __init__(self, message: str = "Entity not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class ValidationError(SyncLayerException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ExternalServiceError(SyncLayerException):
    """Remote data API errors."""

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)
