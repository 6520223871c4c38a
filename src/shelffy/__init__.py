"""Shelffy - book library backend.

Keeps book metadata in PostgreSQL and book payloads in an S3-compatible
object store consistent under partial failure, using a Redis Streams
deletion queue as the reconciliation path.
"""

from .__version__ import __version__

from .core.exceptions import (
    ShelffyError,
    ResourceNotFoundError,
    BookNotFoundError,
    ObjectNotFoundError,
    InternalError,
)

from .features.books import (
    Book,
    DeletionEvent,
    BookDatabaseRepository,
    BookDeletionEventPublisher,
    BookService,
    DeletionEventProcessor,
    ReconciliationReport,
)

from .platform.storage import NotDeletedResult, StorageProviderProtocol
from .platform.events import EventChannelProtocol

__all__ = [
    "__version__",
    "ShelffyError",
    "ResourceNotFoundError",
    "BookNotFoundError",
    "ObjectNotFoundError",
    "InternalError",
    "Book",
    "DeletionEvent",
    "BookDatabaseRepository",
    "BookDeletionEventPublisher",
    "BookService",
    "DeletionEventProcessor",
    "ReconciliationReport",
    "NotDeletedResult",
    "StorageProviderProtocol",
    "EventChannelProtocol",
]
