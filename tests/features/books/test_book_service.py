"""Tests for the book lifecycle service."""

import asyncio
import hashlib
import io
import json
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from shelffy.core.exceptions import (
    BookNotFoundError,
    DatabaseError,
    EventPublishingError,
    InternalError,
    ObjectNotFoundError,
    StorageError,
    ValidationError,
)
from shelffy.features.books.entities.book import Book
from shelffy.features.books.repositories.book_repository import BookDatabaseRepository
from shelffy.features.books.services.book_service import BookService


async def _upload(book_service, owner_id, content=b"helloworld", title="Hello"):
    return await book_service.upload(Book(title=title, uploaded_by=owner_id), len(content), io.BytesIO(content))


async def _declare_books_stream(channel):
    await channel.ensure_stream("BOOKS", ["books.*"])


class TestUpload:
    
    @pytest.mark.asyncio
    async def test_upload_stores_content_and_row(self, book_service, storage, book_repository, owner_id):
        book = await _upload(book_service, owner_id)
        
        assert book.id in book_repository.rows
        assert book.storage_path.startswith(f"{owner_id}/")
        assert book.content_hash == hashlib.sha256(b"helloworld").digest()
        assert storage.contains(book.storage_path)
    
    @pytest.mark.asyncio
    async def test_storage_path_ignores_title(self, book_service, owner_id):
        book = await _upload(book_service, owner_id, title="../../etc/passwd")
        
        assert "passwd" not in book.storage_path
        assert book.title == "../../etc/passwd"
    
    @pytest.mark.asyncio
    async def test_store_failure_leaves_nothing_behind(
        self, book_service, storage, book_repository, channel, owner_id
    ):
        await _declare_books_stream(channel)
        storage.fail_uploads(StorageError("bucket unavailable"))
        
        with pytest.raises(InternalError):
            await _upload(book_service, owner_id)
        
        assert book_repository.rows == {}
        assert channel.published("BOOKS") == []
    
    @pytest.mark.asyncio
    async def test_row_failure_queues_orphan_for_deletion(
        self, book_service, storage, book_repository, channel, owner_id
    ):
        await _declare_books_stream(channel)
        book_repository.create_error = DatabaseError("insert failed")
        
        with pytest.raises(InternalError) as exc_info:
            await _upload(book_service, owner_id)
        
        assert isinstance(exc_info.value.__cause__, DatabaseError)
        [stored_path] = storage.paths
        assert channel.published("BOOKS") == [
            ("books.delete", json.dumps({"path": stored_path}).encode())
        ]
    
    @pytest.mark.asyncio
    async def test_row_failure_with_publish_failure_still_internal(
        self, book_service, book_repository, channel, owner_id
    ):
        await _declare_books_stream(channel)
        book_repository.create_error = DatabaseError("insert failed")
        channel.fail_publishes(EventPublishingError("redis down"))
        
        with pytest.raises(InternalError) as exc_info:
            await _upload(book_service, owner_id)
        
        assert isinstance(exc_info.value.__cause__, DatabaseError)
    
    @pytest.mark.asyncio
    async def test_internal_error_hides_detail(self, book_service, storage, owner_id):
        storage.fail_uploads(StorageError("s3://secret-bucket/key refused"))
        
        with pytest.raises(InternalError) as exc_info:
            await _upload(book_service, owner_id)
        
        assert str(exc_info.value) == "internal error"
    
    @pytest.mark.asyncio
    async def test_concurrent_uploads_never_share_paths(self, book_service, storage, owner_id):
        books = await asyncio.gather(*(
            _upload(book_service, owner_id, content=f"content-{i}".encode(), title="same title")
            for i in range(20)
        ))
        
        assert len({book.storage_path for book in books}) == 20
        assert len(storage.paths) == 20


class TestDelete:
    
    @pytest.mark.asyncio
    async def test_delete_removes_row_and_queues_object(self, book_service, book_repository, channel, owner_id):
        await _declare_books_stream(channel)
        book = await _upload(book_service, owner_id)
        
        await book_service.delete(book.id)
        
        assert book.id not in book_repository.rows
        assert channel.published("BOOKS") == [
            ("books.delete", json.dumps({"path": book.storage_path}).encode())
        ]
        with pytest.raises(BookNotFoundError):
            await book_service.get_by_id(book.id)
    
    @pytest.mark.asyncio
    async def test_delete_missing_book_is_not_found(self, book_service):
        with pytest.raises(BookNotFoundError):
            await book_service.delete(uuid4())
    
    @pytest.mark.asyncio
    async def test_publish_failure_keeps_row(self, book_service, book_repository, channel, owner_id):
        await _declare_books_stream(channel)
        book = await _upload(book_service, owner_id)
        channel.fail_publishes(EventPublishingError("redis down"))
        
        with pytest.raises(InternalError):
            await book_service.delete(book.id)
        
        assert book_repository.rollbacks == 1
        assert (await book_service.get_by_id(book.id)).id == book.id
    
    @pytest.mark.asyncio
    async def test_row_delete_failure_publishes_nothing(self, book_service, book_repository, channel, owner_id):
        await _declare_books_stream(channel)
        book = await _upload(book_service, owner_id)
        book_repository.delete_error = DatabaseError("lock timeout")
        
        with pytest.raises(InternalError):
            await book_service.delete(book.id)
        
        assert channel.published("BOOKS") == []
        assert book.id in book_repository.rows


class TestReads:
    
    @pytest.mark.asyncio
    async def test_get_book_content_round_trip(self, book_service, owner_id):
        book = await _upload(book_service, owner_id)
        
        stream = await book_service.get_book_content_by_id(book.id)
        try:
            assert stream.read() == b"helloworld"
        finally:
            stream.close()
    
    @pytest.mark.asyncio
    async def test_get_book_content_missing_object(self, book_service, storage, owner_id):
        book = await _upload(book_service, owner_id)
        await storage.delete(book.storage_path)
        
        with pytest.raises(ObjectNotFoundError):
            await book_service.get_book_content_by_id(book.id)
    
    @pytest.mark.asyncio
    async def test_get_book_content_missing_book(self, book_service):
        with pytest.raises(BookNotFoundError):
            await book_service.get_book_content_by_id(uuid4())
    
    @pytest.mark.asyncio
    async def test_get_by_title_and_user_id(self, book_service, owner_id):
        book = await _upload(book_service, owner_id, title="Dune")
        
        assert (await book_service.get_by_title_and_user_id("Dune", owner_id)).id == book.id
        with pytest.raises(BookNotFoundError):
            await book_service.get_by_title_and_user_id("Dune", uuid4())
    
    @pytest.mark.asyncio
    async def test_get_many_by_user_id(self, book_service, owner_id):
        await _upload(book_service, owner_id, title="a")
        await _upload(book_service, owner_id, title="b")
        
        assert len(await book_service.get_many_by_user_id(owner_id)) == 2
        assert await book_service.get_many_by_user_id(uuid4()) == []
    
    @pytest.mark.asyncio
    async def test_get_by_hash_finds_duplicates(self, book_service, owner_id):
        first = await _upload(book_service, owner_id, title="a")
        second = await _upload(book_service, uuid4(), title="b")
        
        books = await book_service.get_by_hash(first.content_hash)
        
        assert {book.id for book in books} == {first.id, second.id}
    
    @pytest.mark.asyncio
    async def test_repository_failure_is_internal(self, book_service, book_repository):
        book_repository.get_by_id = AsyncMock(side_effect=DatabaseError("connection lost"))
        
        with pytest.raises(InternalError):
            await book_service.get_by_id(uuid4())
    
    @pytest.mark.asyncio
    async def test_read_timeout_is_internal(self, book_service, book_repository):
        async def never_returns(*args, **kwargs):
            await asyncio.sleep(10)
        
        book_repository.get_by_id = never_returns
        
        with pytest.raises(InternalError):
            await book_service.get_by_id(uuid4())


class TestCallerInputErrors:
    """Rejected input reaches the caller as a validation failure, not internal."""
    
    @pytest.fixture
    def db_book_service(self, mock_database, storage, event_publisher):
        return BookService(
            repository=BookDatabaseRepository(mock_database, query_timeout=1.0),
            storage=storage,
            event_publisher=event_publisher,
            timeout=1.0,
        )
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit,offset", [(0, 0), (-1, 0), (10, -1)])
    async def test_bad_page_is_validation_error(self, db_book_service, mock_database, owner_id, limit, offset):
        with pytest.raises(ValidationError):
            await db_book_service.get_many_by_user_id(owner_id, limit=limit, offset=offset)
        
        mock_database.fetch.assert_not_awaited()
    
    @pytest.mark.asyncio
    async def test_wrong_size_hash_is_validation_error(self, db_book_service, mock_database):
        with pytest.raises(ValidationError):
            await db_book_service.get_by_hash(b"short")
        
        mock_database.fetch.assert_not_awaited()
    
    @pytest.mark.asyncio
    async def test_driver_failure_is_still_internal(self, db_book_service, mock_database, owner_id):
        mock_database.fetch.side_effect = ConnectionError("connection reset")
        
        with pytest.raises(InternalError):
            await db_book_service.get_many_by_user_id(owner_id)
