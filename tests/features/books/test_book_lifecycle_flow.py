"""End-to-end lifecycle: upload, delete and reconciliation over in-memory backends."""

import asyncio
import hashlib
import io
from uuid import UUID

import pytest

from shelffy.core.exceptions import BookNotFoundError, DatabaseError, InternalError
from shelffy.features.books.entities.book import Book


OWNER_U1 = UUID("00000000-0000-0000-0000-0000000000a1")


class TestBookLifecycleFlow:
    
    @pytest.mark.asyncio
    async def test_upload_delete_reconcile(self, book_service, deletion_processor, storage):
        await deletion_processor.setup()
        
        book = await book_service.upload(
            Book(title="Hello", uploaded_by=OWNER_U1), 10, io.BytesIO(b"helloworld")
        )
        
        owner_part, _, generated = book.storage_path.partition("/")
        assert owner_part == str(OWNER_U1)
        assert UUID(generated)
        assert book.content_hash == hashlib.sha256(b"helloworld").digest()
        assert (await book_service.get_book_content_by_id(book.id)).read() == b"helloworld"
        
        await book_service.delete(book.id)
        
        with pytest.raises(BookNotFoundError):
            await book_service.get_by_id(book.id)
        assert storage.contains(book.storage_path)
        
        report = await deletion_processor.run_once()
        
        assert storage.batch_delete_calls == [[book.storage_path]]
        assert report.deleted == [book.storage_path]
        assert report.not_deleted == []
        assert not storage.contains(book.storage_path)
    
    @pytest.mark.asyncio
    async def test_orphan_from_failed_insert_is_reclaimed(
        self, book_service, book_repository, deletion_processor, storage
    ):
        await deletion_processor.setup()
        book_repository.create_error = DatabaseError("insert failed")
        
        with pytest.raises(InternalError):
            await book_service.upload(Book(title="Hello", uploaded_by=OWNER_U1), 10, io.BytesIO(b"helloworld"))
        [orphan] = storage.paths
        
        report = await deletion_processor.run_once()
        
        assert report.deleted == [orphan]
        assert storage.paths == []
    
    @pytest.mark.asyncio
    async def test_replayed_event_is_harmless(self, book_service, deletion_processor, event_publisher):
        await deletion_processor.setup()
        book = await book_service.upload(Book(title="Hello", uploaded_by=OWNER_U1), 10, io.BytesIO(b"helloworld"))
        await book_service.delete(book.id)
        await deletion_processor.run_once()
        
        # Same event published again, as after a crash between delete and ack
        await event_publisher.publish_delete_book_event(book.storage_path)
        report = await deletion_processor.run_once()
        
        assert report.deleted == [book.storage_path]
        assert report.not_deleted == []
    
    @pytest.mark.asyncio
    async def test_background_loop_reclaims_deleted_books(self, book_service, deletion_processor, storage):
        await deletion_processor.setup()
        books = [
            await book_service.upload(Book(title=f"b{i}", uploaded_by=OWNER_U1), 1, io.BytesIO(b"x"))
            for i in range(5)
        ]
        deletion_processor.start()
        
        for book in books:
            await book_service.delete(book.id)
        for _ in range(100):
            if not storage.paths:
                break
            await asyncio.sleep(0.01)
        await deletion_processor.stop()
        
        assert storage.paths == []
