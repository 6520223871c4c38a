"""Tests for the in-memory storage provider."""

import io

import pytest

from shelffy.core.exceptions import ObjectNotFoundError, StorageError
from shelffy.platform.storage.core.protocols.storage_provider import StorageProviderProtocol
from shelffy.platform.storage.infrastructure.providers.memory_storage_provider import MemoryStorageProvider


class TestMemoryStorageProvider:
    """Contract behavior of the in-memory provider."""
    
    def test_satisfies_protocol(self, storage):
        assert isinstance(storage, StorageProviderProtocol)
    
    @pytest.mark.asyncio
    async def test_upload_then_get_returns_same_bytes(self, storage):
        await storage.upload("u1/a", 10, io.BytesIO(b"helloworld"))
        
        stream = await storage.get("u1/a")
        try:
            assert stream.read() == b"helloworld"
        finally:
            stream.close()
    
    @pytest.mark.asyncio
    async def test_upload_overwrites_existing_key(self, storage):
        await storage.upload("k", 3, io.BytesIO(b"old"))
        await storage.upload("k", 3, io.BytesIO(b"new"))
        
        assert (await storage.get("k")).read() == b"new"
    
    @pytest.mark.asyncio
    async def test_upload_unknown_size(self, storage):
        await storage.upload("k", -1, io.BytesIO(b"x" * 200_000))
        
        assert len((await storage.get("k")).read()) == 200_000
    
    @pytest.mark.asyncio
    async def test_upload_length_mismatch_fails(self, storage):
        with pytest.raises(StorageError):
            await storage.upload("k", 5, io.BytesIO(b"abc"))
        assert not storage.contains("k")
    
    @pytest.mark.asyncio
    async def test_get_missing_key(self, storage):
        with pytest.raises(ObjectNotFoundError) as exc_info:
            await storage.get("missing")
        assert exc_info.value.storage_path == "missing"
    
    @pytest.mark.asyncio
    async def test_delete_missing_key_succeeds(self, storage):
        await storage.delete("never-existed")
    
    @pytest.mark.asyncio
    async def test_delete_removes_object(self, storage):
        await storage.upload("k", 1, io.BytesIO(b"x"))
        
        await storage.delete("k")
        
        assert not storage.contains("k")
    
    @pytest.mark.asyncio
    async def test_batch_delete_empty_is_noop(self, storage):
        assert await storage.batch_delete() == []
    
    @pytest.mark.asyncio
    async def test_batch_delete_partial_failure(self, storage):
        for key in ("p1", "p2", "p3"):
            await storage.upload(key, 1, io.BytesIO(b"x"))
        storage.fail_path("p2", StorageError("access denied"))
        
        result = await storage.batch_delete("p1", "p2", "p3")
        
        assert [r.path for r in result] == ["p2"]
        assert isinstance(result[0].cause, StorageError)
        assert storage.paths == ["p2"]
    
    @pytest.mark.asyncio
    async def test_batch_delete_already_removed_paths(self, storage):
        assert await storage.batch_delete("gone", "gone") == []
    
    @pytest.mark.asyncio
    async def test_batch_delete_total_failure_raises(self, storage):
        storage.fail_batch_calls(StorageError("connection reset"))
        
        with pytest.raises(StorageError):
            await storage.batch_delete("p1")
    
    @pytest.mark.asyncio
    async def test_cleared_failure_allows_delete(self, storage):
        await storage.upload("p", 1, io.BytesIO(b"x"))
        storage.fail_path("p")
        assert len(await storage.batch_delete("p")) == 1
        
        storage.clear_failure("p")
        
        assert await storage.batch_delete("p") == []
        assert not storage.contains("p")
