"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,

    # Sessions
    SessionNotFoundError,
    SessionClosedError,
    SavedOrderNotFoundError,
    CartLineNotFoundError,

    # Catalog
    CatalogLoadError,
    CatalogNotLoadedError,

    # Selection / compilation
    InvalidActionError,
    CompilerInvariantError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",

    # Sessions
    "SessionNotFoundError",
    "SessionClosedError",
    "SavedOrderNotFoundError",
    "CartLineNotFoundError",

    # Catalog
    "CatalogLoadError",
    "CatalogNotLoadedError",

    # Selection / compilation
    "InvalidActionError",
    "CompilerInvariantError",
]
