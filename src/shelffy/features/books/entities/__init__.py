"""Book entities and protocols."""

from .book import Book
from .deletion_event import DeletionEvent
from .protocols import BookRepository

__all__ = ["Book", "DeletionEvent", "BookRepository"]
