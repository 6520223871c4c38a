"""Constants for shelffy.

This module defines the names and fixed values shared between the
book lifecycle service, the event channel and the reconciliation loop.
"""

from enum import Enum
from typing import Final


class BookSubjects:
    """Event channel subjects for book events."""
    
    ALL: Final[str] = "books.*"
    DELETE_BOOK: Final[str] = "books.delete"


class BookStreams:
    """Stream and durable consumer names for book events."""
    
    BOOKS: Final[str] = "BOOKS"
    DELETE_BOOK_DURABLE: Final[str] = "books-deleter"


class DeletionDefaults:
    """Reconciliation loop defaults."""
    
    BATCH_SIZE: Final[int] = 100
    MAX_WAIT_SECONDS: Final[float] = 60.0
    ERROR_BACKOFF_SECONDS: Final[float] = 1.0


class StorageLimits:
    """Object store limits."""
    
    # S3 DeleteObjects accepts at most 1000 keys per request
    MAX_BATCH_DELETE_KEYS: Final[int] = 1000
    DELETE_WAIT_SECONDS: Final[int] = 60


class DeliverPolicy(str, Enum):
    """Where a new durable consumer starts reading."""
    
    ALL = "all"
    NEW = "new"


BOOK_HASH_SIZE: Final[int] = 32  # SHA-256 digest bytes
