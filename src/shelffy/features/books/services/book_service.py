"""Book lifecycle service.

Sequences object store writes, metadata writes and deletion events so
that a book row never outlives its queued cleanup:

- upload stores the content first, then inserts the row; when the insert
  fails the stored object is queued for deletion (best effort);
- delete removes the row and queues the object inside one transaction,
  so a failed publish leaves the row in place for a retry.
"""

import asyncio
import logging
from typing import Awaitable, BinaryIO, List, TypeVar
from uuid import UUID, uuid4

from ....core.exceptions import InternalError
from ....platform.storage.core.protocols.storage_provider import StorageProviderProtocol
from ..entities.book import Book
from ..entities.protocols import BookRepository
from ..utils.error_handling import book_error_handler
from ..utils.hashing import HashingReader
from ..utils.storage_paths import build_storage_path
from .book_events import BookDeletionEventPublisher


logger = logging.getLogger(__name__)

T = TypeVar("T")


class BookService:
    """Upload, delete and read books."""
    
    def __init__(
        self,
        repository: BookRepository,
        storage: StorageProviderProtocol,
        event_publisher: BookDeletionEventPublisher,
        timeout: float = 10.0
    ):
        """Initialize book service.
        
        Args:
            repository: Book metadata repository
            storage: Object store holding book payloads
            event_publisher: Publisher for deletion events
            timeout: Upper bound in seconds for read operations
        """
        self._repository = repository
        self._storage = storage
        self._events = event_publisher
        self._timeout = timeout
    
    async def _with_timeout(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"{operation} timed out after {self._timeout}s")
            raise InternalError() from e
    
    @book_error_handler("upload book")
    async def upload(self, book: Book, content_length: int, content: BinaryIO) -> Book:
        """Store the content and record the book.
        
        Args:
            book: Title and owner; id, path and hash are assigned here
            content_length: Payload size in bytes, negative if unknown
            content: Payload stream, read once
        
        Returns:
            The persisted book
        
        Raises:
            InternalError: If the store write or the row insert failed
        """
        storage_path = build_storage_path(book.uploaded_by)
        reader = HashingReader(content)
        
        try:
            await self._storage.upload(storage_path, content_length, reader)
        except Exception as e:
            logger.error(f"Failed to store content at '{storage_path}': {e}")
            raise InternalError() from e
        
        new_book = Book(
            id=uuid4(),
            title=book.title,
            uploaded_by=book.uploaded_by,
            storage_path=storage_path,
            content_hash=reader.digest(),
        )
        
        try:
            created = await self._repository.create(new_book)
        except Exception as e:
            logger.error(f"Failed to record book at '{storage_path}', queueing object for deletion: {e}")
            await self._queue_orphan(storage_path)
            raise InternalError() from e
        
        logger.info(
            f"Uploaded book {created.id} for {created.uploaded_by} "
            f"({reader.bytes_read} bytes, sha256={created.hash_hex})"
        )
        return created
    
    async def _queue_orphan(self, storage_path: str) -> None:
        try:
            await self._events.publish_delete_book_event(storage_path)
        except Exception as e:
            # Orphan stays in the store until an external sweep
            logger.error(f"Failed to queue deletion of orphaned object '{storage_path}': {e}")
    
    @book_error_handler("delete book")
    async def delete(self, book_id: UUID) -> None:
        """Delete the book row and queue its object for deletion.
        
        Raises:
            BookNotFoundError: If no book has the id
            InternalError: If the row delete or the publish failed; the
                transaction is rolled back and the book stays queryable
        """
        async with self._repository.transaction() as connection:
            book = await self._repository.get_by_id(book_id, for_update=True, connection=connection)
            await self._repository.delete(book_id, connection=connection)
            await self._events.publish_delete_book_event(book.storage_path)
        
        logger.info(f"Deleted book {book_id}, object '{book.storage_path}' queued for deletion")
    
    @book_error_handler("get book")
    async def get_by_id(self, book_id: UUID) -> Book:
        return await self._with_timeout("get book", self._repository.get_by_id(book_id))
    
    @book_error_handler("get book by title")
    async def get_by_title_and_user_id(self, title: str, user_id: UUID) -> Book:
        return await self._with_timeout(
            "get book by title",
            self._repository.get_by_title_and_user_id(title, user_id),
        )
    
    @book_error_handler("list user books")
    async def get_many_by_user_id(self, user_id: UUID, limit: int = 100, offset: int = 0) -> List[Book]:
        return await self._with_timeout(
            "list user books",
            self._repository.get_many_by_user_id(user_id, limit=limit, offset=offset),
        )
    
    @book_error_handler("get books by hash")
    async def get_by_hash(self, content_hash: bytes) -> List[Book]:
        return await self._with_timeout("get books by hash", self._repository.get_by_hash(content_hash))
    
    @book_error_handler("get book content")
    async def get_book_content_by_id(self, book_id: UUID) -> BinaryIO:
        """Open the book's payload for streaming.
        
        Returns:
            Readable stream; the caller must close it
        
        Raises:
            BookNotFoundError: If no book has the id
            ObjectNotFoundError: If the row exists but its object doesn't
        """
        book = await self._with_timeout("get book content", self._repository.get_by_id(book_id))
        return await self._with_timeout("get book content", self._storage.get(book.storage_path))
