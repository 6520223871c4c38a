"""Book repositories."""

from .book_repository import BookDatabaseRepository

__all__ = ["BookDatabaseRepository"]
