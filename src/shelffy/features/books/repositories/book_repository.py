"""Book repository implementation using the shared asyncpg pool."""

import logging
from contextlib import asynccontextmanager
from typing import Any, List, Optional
from uuid import UUID, uuid4

from ....config.constants import BOOK_HASH_SIZE
from ....core.exceptions import BookNotFoundError, ValidationError
from ....database.connection import DatabaseManager
from ..entities.book import Book
from ..utils.error_handling import handle_book_repository_error
from ..utils.queries import (
    BOOKS_INDEX_HASH,
    BOOKS_INDEX_OWNER_TITLE,
    BOOKS_TABLE_CREATE,
    BOOK_DELETE,
    BOOK_GET_BY_HASH,
    BOOK_GET_BY_ID,
    BOOK_GET_BY_ID_FOR_UPDATE,
    BOOK_GET_BY_TITLE_AND_USER_ID,
    BOOK_GET_MANY_BY_USER_ID,
    BOOK_INSERT,
)


logger = logging.getLogger(__name__)


class BookDatabaseRepository:
    """Database repository for book metadata.
    
    Absence is reported as ``BookNotFoundError``; every other failure is
    logged and raised as ``DatabaseError``.
    """
    
    def __init__(
        self,
        database: DatabaseManager,
        schema: str = "public",
        query_timeout: Optional[float] = None
    ):
        """Initialize with the process-wide database manager.
        
        Args:
            database: Database manager owning the connection pool
            schema: Schema holding the books table
            query_timeout: Per-statement timeout in seconds
        """
        self._db = database
        self._schema = schema
        self._timeout = query_timeout
    
    def _query(self, template: str) -> str:
        return template.format(schema=self._schema)
    
    @asynccontextmanager
    async def transaction(self):
        """Open a transaction on a pooled connection."""
        async with self._db.transaction() as connection:
            yield connection
    
    async def _fetchrow(self, template: str, *args, connection: Optional[Any] = None):
        if connection is not None:
            return await connection.fetchrow(self._query(template), *args, timeout=self._timeout)
        return await self._db.fetchrow(self._query(template), *args, timeout=self._timeout)
    
    async def _fetch(self, template: str, *args, connection: Optional[Any] = None):
        if connection is not None:
            return await connection.fetch(self._query(template), *args, timeout=self._timeout)
        return await self._db.fetch(self._query(template), *args, timeout=self._timeout)
    
    async def _execute(self, template: str, *args, connection: Optional[Any] = None) -> str:
        if connection is not None:
            return await connection.execute(self._query(template), *args, timeout=self._timeout)
        return await self._db.execute(self._query(template), *args, timeout=self._timeout)
    
    async def create_schema(self) -> None:
        """Create the books table and its indexes if missing."""
        try:
            for statement in (BOOKS_TABLE_CREATE, BOOKS_INDEX_OWNER_TITLE, BOOKS_INDEX_HASH):
                await self._execute(statement)
            logger.info(f"Books schema ready in '{self._schema}'")
        except Exception as e:
            handle_book_repository_error("create_schema", self._schema, e)
    
    async def create(self, book: Book, connection: Optional[Any] = None) -> Book:
        """Insert a book row and return it with server-side defaults."""
        book_id = book.id or uuid4()
        try:
            row = await self._fetchrow(
                BOOK_INSERT,
                book_id,
                book.title,
                book.storage_path,
                book.content_hash,
                book.uploaded_by,
                connection=connection,
            )
        except Exception as e:
            handle_book_repository_error("create", book_id, e, {"path": book.storage_path})
        
        logger.debug(f"Created book {book_id} at '{book.storage_path}'")
        return self._row_to_book(row)
    
    async def get_by_id(
        self,
        book_id: UUID,
        for_update: bool = False,
        connection: Optional[Any] = None
    ) -> Book:
        """Get book by id, optionally locking the row."""
        query = BOOK_GET_BY_ID_FOR_UPDATE if for_update else BOOK_GET_BY_ID
        try:
            row = await self._fetchrow(query, book_id, connection=connection)
        except Exception as e:
            handle_book_repository_error("get_by_id", book_id, e)
        
        if row is None:
            raise BookNotFoundError(book_id=str(book_id))
        return self._row_to_book(row)
    
    async def get_by_title_and_user_id(
        self,
        title: str,
        user_id: UUID,
        connection: Optional[Any] = None
    ) -> Book:
        try:
            row = await self._fetchrow(BOOK_GET_BY_TITLE_AND_USER_ID, title, user_id, connection=connection)
        except Exception as e:
            handle_book_repository_error("get_by_title_and_user_id", user_id, e, {"title": title})
        
        if row is None:
            raise BookNotFoundError(details={"title": title, "user_id": str(user_id)})
        return self._row_to_book(row)
    
    async def get_many_by_user_id(
        self,
        user_id: UUID,
        limit: int = 100,
        offset: int = 0,
        connection: Optional[Any] = None
    ) -> List[Book]:
        if limit <= 0 or offset < 0:
            raise ValidationError(f"Invalid page: limit={limit}, offset={offset}")
        try:
            rows = await self._fetch(BOOK_GET_MANY_BY_USER_ID, user_id, limit, offset, connection=connection)
        except Exception as e:
            handle_book_repository_error("get_many_by_user_id", user_id, e, {"limit": limit, "offset": offset})
        
        return [self._row_to_book(row) for row in rows]
    
    async def get_by_hash(self, content_hash: bytes, connection: Optional[Any] = None) -> List[Book]:
        """Get every book whose content has the digest."""
        if len(content_hash) != BOOK_HASH_SIZE:
            raise ValidationError(f"Content hash must be {BOOK_HASH_SIZE} bytes, got {len(content_hash)}")
        try:
            rows = await self._fetch(BOOK_GET_BY_HASH, content_hash, connection=connection)
        except Exception as e:
            handle_book_repository_error("get_by_hash", content_hash.hex(), e)
        
        if not rows:
            raise BookNotFoundError(details={"hash": content_hash.hex()})
        return [self._row_to_book(row) for row in rows]
    
    async def delete(self, book_id: UUID, connection: Optional[Any] = None) -> None:
        """Delete the row by id. Deleting a missing id is not an error."""
        try:
            await self._execute(BOOK_DELETE, book_id, connection=connection)
        except Exception as e:
            handle_book_repository_error("delete", book_id, e)
        
        logger.debug(f"Deleted book row {book_id}")
    
    def _row_to_book(self, row) -> Book:
        return Book(
            id=row["id"],
            title=row["title"],
            storage_path=row["path"],
            content_hash=bytes(row["hash"]),
            uploaded_by=row["uploaded_by"],
            uploaded_at=row["uploaded_at"],
        )
