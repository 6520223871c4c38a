"""Domain-specific exceptions for shelffy.

This module defines the caller-facing error taxonomy: absence of a
resource, opaque internal failure, and invalid input or configuration.
"""

from typing import Any, Dict, Optional

from .base import ShelffyError


# Configuration Errors
class ConfigurationError(ShelffyError):
    """Raised when there's a configuration issue."""
    pass


# Validation Errors
class ValidationError(ShelffyError):
    """Raised when input validation fails."""
    pass


# Not Found Errors
class ResourceNotFoundError(ShelffyError):
    """Base class for "resource is absent" conditions."""
    pass


class BookNotFoundError(ResourceNotFoundError):
    """Raised when no book row matches the lookup."""
    
    def __init__(
        self,
        message: str = "book not found",
        book_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        enhanced_details = details or {}
        if book_id:
            enhanced_details["book_id"] = book_id
        super().__init__(message, error_code="BOOK_NOT_FOUND", details=enhanced_details)
        self.book_id = book_id


class ObjectNotFoundError(ResourceNotFoundError):
    """Raised when the object store proves a key is absent."""
    
    def __init__(
        self,
        message: str = "object not found",
        storage_path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        enhanced_details = details or {}
        if storage_path:
            enhanced_details["storage_path"] = storage_path
        super().__init__(message, error_code="OBJECT_NOT_FOUND", details=enhanced_details)
        self.storage_path = storage_path


# Internal Errors
class InternalError(ShelffyError):
    """Opaque failure surfaced to callers.
    
    The message never carries lower-layer detail; the original exception
    is chained as ``__cause__`` and logged where it was detected.
    """
    
    def __init__(self, message: str = "internal error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="INTERNAL", details=details)
