"""Infrastructure-specific exceptions for shelffy.

This module defines exceptions related to external systems: the
relational database, the object store and the event channel.
"""

from .base import ShelffyError


# Database Errors
class DatabaseError(ShelffyError):
    """Base class for database-related errors."""
    pass


class ConnectionPoolError(DatabaseError):
    """Raised when the connection pool cannot be created or used."""
    pass


# Storage Errors
class StorageError(ShelffyError):
    """Raised when an object store operation fails."""
    pass


# Event Errors
class EventChannelError(ShelffyError):
    """Base class for event channel errors."""
    pass


class EventPublishingError(EventChannelError):
    """Raised when a message was not durably recorded."""
    pass


class StreamNotFoundError(EventChannelError):
    """Raised when a stream has not been declared."""
    pass
