"""Exceptions module for shelffy.

This module provides the complete exception hierarchy for shelffy,
organized by domain concerns and infrastructure concerns.
"""

from .base import ShelffyError

from .domain import (
    # Configuration Errors
    ConfigurationError,
    
    # Validation Errors
    ValidationError,
    
    # Not Found Errors
    ResourceNotFoundError,
    BookNotFoundError,
    ObjectNotFoundError,
    
    # Internal Errors
    InternalError,
)

from .infrastructure import (
    # Database Errors
    DatabaseError,
    ConnectionPoolError,
    
    # Storage Errors
    StorageError,
    
    # Event Errors
    EventChannelError,
    EventPublishingError,
    StreamNotFoundError,
)

__all__ = [
    "ShelffyError",
    "ConfigurationError",
    "ValidationError",
    "ResourceNotFoundError",
    "BookNotFoundError",
    "ObjectNotFoundError",
    "InternalError",
    "DatabaseError",
    "ConnectionPoolError",
    "StorageError",
    "EventChannelError",
    "EventPublishingError",
    "StreamNotFoundError",
]
