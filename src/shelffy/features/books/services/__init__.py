"""Book services."""

from .book_events import BookDeletionEventPublisher
from .book_service import BookService
from .deletion_processor import DeletionEventProcessor, ReconciliationReport

__all__ = [
    "BookDeletionEventPublisher",
    "BookService",
    "DeletionEventProcessor",
    "ReconciliationReport",
]
