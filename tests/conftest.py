"""Pytest configuration and fixtures for shelffy tests."""

import copy
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from shelffy.core.exceptions import BookNotFoundError, DatabaseError
from shelffy.features.books.entities.book import Book
from shelffy.features.books.services.book_events import BookDeletionEventPublisher
from shelffy.features.books.services.book_service import BookService
from shelffy.features.books.services.deletion_processor import DeletionEventProcessor
from shelffy.platform.events.infrastructure.channels.memory_event_channel import MemoryEventChannel
from shelffy.platform.storage.infrastructure.providers.memory_storage_provider import MemoryStorageProvider


class InMemoryBookRepository:
    """Book repository double with transaction rollback."""
    
    def __init__(self):
        self.rows: Dict[UUID, Book] = {}
        self.create_error: Optional[Exception] = None
        self.delete_error: Optional[Exception] = None
        self.transactions = 0
        self.rollbacks = 0
    
    @asynccontextmanager
    async def transaction(self):
        snapshot = copy.deepcopy(self.rows)
        self.transactions += 1
        try:
            yield object()
        except BaseException:
            self.rows = snapshot
            self.rollbacks += 1
            raise
    
    async def create(self, book: Book, connection=None) -> Book:
        if self.create_error is not None:
            raise self.create_error
        if any(row.storage_path == book.storage_path for row in self.rows.values()):
            raise DatabaseError(f"duplicate path {book.storage_path}")
        stored = Book(
            id=book.id or uuid4(),
            title=book.title,
            uploaded_by=book.uploaded_by,
            storage_path=book.storage_path,
            content_hash=book.content_hash,
            uploaded_at=datetime.now(timezone.utc),
        )
        self.rows[stored.id] = stored
        return stored
    
    async def get_by_id(self, book_id: UUID, for_update: bool = False, connection=None) -> Book:
        if book_id not in self.rows:
            raise BookNotFoundError(book_id=str(book_id))
        return self.rows[book_id]
    
    async def get_by_title_and_user_id(self, title: str, user_id: UUID, connection=None) -> Book:
        for row in self.rows.values():
            if row.title == title and row.uploaded_by == user_id:
                return row
        raise BookNotFoundError()
    
    async def get_many_by_user_id(
        self, user_id: UUID, limit: int = 100, offset: int = 0, connection=None
    ) -> List[Book]:
        books = [row for row in self.rows.values() if row.uploaded_by == user_id]
        return books[offset:offset + limit]
    
    async def get_by_hash(self, content_hash: bytes, connection=None) -> List[Book]:
        books = [row for row in self.rows.values() if row.content_hash == content_hash]
        if not books:
            raise BookNotFoundError()
        return books
    
    async def delete(self, book_id: UUID, connection=None) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.rows.pop(book_id, None)


@pytest.fixture
def owner_id():
    """Sample owner id."""
    return uuid4()


@pytest.fixture
def storage():
    """In-memory object store."""
    return MemoryStorageProvider()


@pytest.fixture
def channel():
    """In-memory event channel with immediate redelivery of unacked messages."""
    return MemoryEventChannel(claim_min_idle_seconds=0)


@pytest.fixture
def book_repository():
    """In-memory book repository."""
    return InMemoryBookRepository()


@pytest.fixture
def event_publisher(channel):
    return BookDeletionEventPublisher(channel)


@pytest.fixture
def book_service(book_repository, storage, event_publisher):
    """Book service over in-memory collaborators."""
    return BookService(
        repository=book_repository,
        storage=storage,
        event_publisher=event_publisher,
        timeout=1.0,
    )


@pytest.fixture
def deletion_processor(channel, storage):
    """Deletion processor with short waits."""
    return DeletionEventProcessor(
        channel=channel,
        storage=storage,
        batch_size=100,
        max_wait=0.05,
        error_backoff=0.01,
    )


@pytest.fixture
def mock_database():
    """Mock database manager for repository tests."""
    mock_db = AsyncMock()
    mock_db.fetchrow = AsyncMock()
    mock_db.fetch = AsyncMock()
    mock_db.execute = AsyncMock()
    return mock_db


@pytest.fixture
def mock_redis():
    """Mock async Redis client."""
    redis_client = MagicMock()
    for method in ("hset", "hexists", "hgetall", "xgroup_create", "xadd",
                   "xautoclaim", "xreadgroup", "xack", "xpending_range",
                   "xgroup_delconsumer", "ping"):
        setattr(redis_client, method, AsyncMock())
    return redis_client
