"""
Custom exception classes for the application.

Validation failures the customer can correct are NOT exceptions: they are
returned as ValidationResult values. Everything here is either a client
misuse of the API, a backend failure, or a programming error.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "SESSION_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with the current resource state (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# SESSION ERRORS
# ===================

class SessionNotFoundError(NotFoundError):
    """Configurator session not found (never opened, or already closed and purged)."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Session",
            identifier=session_id,
            code="SESSION_NOT_FOUND"
        )


class SessionClosedError(ConflictError):
    """Operation attempted on a closed configurator session."""

    def __init__(self, session_id: str):
        super().__init__(
            code="SESSION_CLOSED",
            message="Configurator session is closed",
            details={"session_id": session_id}
        )


class SavedOrderNotFoundError(NotFoundError):
    """No saved order at the given buffer position."""

    def __init__(self, session_id: str, index: int):
        super().__init__(
            resource="SavedOrder",
            identifier=f"{session_id}#{index}",
            code="SAVED_ORDER_NOT_FOUND"
        )


class CartLineNotFoundError(NotFoundError):
    """Cart line item not found."""

    def __init__(self, line_id: str):
        super().__init__(
            resource="CartLine",
            identifier=line_id,
            code="CART_LINE_NOT_FOUND"
        )


# ===================
# CATALOG ERRORS
# ===================

class CatalogLoadError(ExternalServiceError):
    """Menu item catalog could not be fetched. Retried manually only."""

    def __init__(self, item_id: str, message: str):
        super().__init__(
            service="catalog",
            message=message,
            details={"item_id": item_id},
            code="CATALOG_LOAD_FAILED"
        )


class CatalogNotLoadedError(ConflictError):
    """Mutation attempted before the session's catalog finished loading."""

    def __init__(self, session_id: str, status: str):
        super().__init__(
            code="CATALOG_NOT_LOADED",
            message="Menu item is not loaded; retry loading before configuring",
            details={"session_id": session_id, "status": status}
        )


# ===================
# SELECTION ERRORS
# ===================

class InvalidActionError(ValidationError):
    """A selection action references something the catalog does not offer."""

    def __init__(self, action: str, message: str, details: Optional[dict] = None):
        super().__init__(
            code="INVALID_SELECTION_ACTION",
            message=message,
            details={"action": action, **(details or {})}
        )


class CompilerInvariantError(AppError):
    """
    Cart line compilation precondition violated.

    The validation gate makes this unreachable from a client; seeing it
    means a caller compiled without validating first.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="COMPILER_INVARIANT_VIOLATION",
            message=message,
            status_code=500,
            details=details
        )
