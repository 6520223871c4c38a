"""Books feature.

Book metadata persistence and the lifecycle service that keeps book rows
and their stored payloads consistent through deletion events.
"""

from .entities import Book, BookRepository, DeletionEvent
from .repositories import BookDatabaseRepository
from .services import (
    BookDeletionEventPublisher,
    BookService,
    DeletionEventProcessor,
    ReconciliationReport,
)

__all__ = [
    "Book",
    "BookRepository",
    "DeletionEvent",
    "BookDatabaseRepository",
    "BookDeletionEventPublisher",
    "BookService",
    "DeletionEventProcessor",
    "ReconciliationReport",
]
