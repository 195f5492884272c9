"""
Shared error handling for the EV Catalog services.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class CatalogException(Exception):
    """Base exception for catalog services."""

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class NotFoundError(CatalogException):
    """Requested record does not exist."""

    status_code = 404

    def __init__(self, message: str = "Record not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class NotAvailableError(CatalogException):
    """A backing store (persistence or cache) is unreachable."""

    status_code = 503

    def __init__(self, store: str, message: str = "Store not available", details: Optional[Dict[str, Any]] = None):
        self.store = store
        super().__init__("NOT_AVAILABLE", f"{store}: {message}", details)


class InvalidQueryError(CatalogException):
    """Malformed pagination parameters or record identifier."""

    status_code = 400

    def __init__(self, message: str = "Invalid query", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_QUERY", message, details)


class ValidationError(CatalogException):
    """Validation-related errors."""

    status_code = 422

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)
