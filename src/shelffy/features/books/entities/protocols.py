"""Protocol interfaces for book persistence.

Defines the repository contract the lifecycle service depends on, so
tests can substitute an in-memory or mocked implementation.
"""

from abc import abstractmethod
from typing import Any, AsyncContextManager, List, Optional
from uuid import UUID

from typing_extensions import Protocol, runtime_checkable

from .book import Book


@runtime_checkable
class BookRepository(Protocol):
    """Protocol for book metadata persistence.
    
    Every method takes an optional ``connection`` so it can join a
    transaction opened with ``transaction()``.
    """
    
    @abstractmethod
    def transaction(self) -> AsyncContextManager[Any]:
        """Open a transaction; yields the connection to pass to other calls."""
        ...
    
    @abstractmethod
    async def create(self, book: Book, connection: Optional[Any] = None) -> Book:
        """Insert the book and return the stored row."""
        ...
    
    @abstractmethod
    async def get_by_id(
        self,
        book_id: UUID,
        for_update: bool = False,
        connection: Optional[Any] = None
    ) -> Book:
        """Get book by id. Raises BookNotFoundError when absent."""
        ...
    
    @abstractmethod
    async def get_by_title_and_user_id(
        self,
        title: str,
        user_id: UUID,
        connection: Optional[Any] = None
    ) -> Book:
        """Get a user's book by title. Raises BookNotFoundError when absent."""
        ...
    
    @abstractmethod
    async def get_many_by_user_id(
        self,
        user_id: UUID,
        limit: int = 100,
        offset: int = 0,
        connection: Optional[Any] = None
    ) -> List[Book]:
        """List a user's books, newest first."""
        ...
    
    @abstractmethod
    async def get_by_hash(self, content_hash: bytes, connection: Optional[Any] = None) -> List[Book]:
        """Get every book with the digest. Raises BookNotFoundError when none."""
        ...
    
    @abstractmethod
    async def delete(self, book_id: UUID, connection: Optional[Any] = None) -> None:
        """Delete the row unconditionally."""
        ...
