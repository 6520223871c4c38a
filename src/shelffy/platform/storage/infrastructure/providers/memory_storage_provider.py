"""In-memory storage provider for development and testing.

Same contract as the S3 provider, including batch partial failure:
individual paths can be marked as failing so callers observe
``NotDeletedResult`` entries exactly as they would from a real bucket.
"""

import asyncio
import io
from typing import BinaryIO, Dict, List, Optional

from .....core.exceptions import ObjectNotFoundError, StorageError
from ...core.entities.not_deleted_result import NotDeletedResult
from ...core.protocols.storage_provider import StorageProviderProtocol


class MemoryStorageProvider(StorageProviderProtocol):
    """Dictionary-backed object store. No persistence."""
    
    def __init__(self, chunk_size: int = 64 * 1024):
        self._chunk_size = chunk_size
        self._objects: Dict[str, bytes] = {}
        self._lock = asyncio.Lock()
        
        # Failure injection
        self._path_failures: Dict[str, Exception] = {}
        self._upload_error: Optional[Exception] = None
        self._batch_error: Optional[Exception] = None
        
        # Call log for assertions
        self.batch_delete_calls: List[List[str]] = []
    
    # ===========================================
    # Failure injection
    # ===========================================
    
    def fail_path(self, path: str, cause: Optional[Exception] = None) -> None:
        """Make deletes of ``path`` fail with ``cause`` until cleared."""
        self._path_failures[path] = cause or StorageError("injected delete failure")
    
    def clear_failure(self, path: str) -> None:
        self._path_failures.pop(path, None)
    
    def fail_uploads(self, error: Optional[Exception]) -> None:
        """Make every upload raise ``error``; ``None`` restores uploads."""
        self._upload_error = error
    
    def fail_batch_calls(self, error: Optional[Exception]) -> None:
        """Make every batch delete fail as a whole; ``None`` restores it."""
        self._batch_error = error
    
    # ===========================================
    # Inspection
    # ===========================================
    
    def contains(self, path: str) -> bool:
        return path in self._objects
    
    @property
    def paths(self) -> List[str]:
        return sorted(self._objects)
    
    # ===========================================
    # StorageProviderProtocol
    # ===========================================
    
    async def upload(self, path: str, size_hint: int, content: BinaryIO) -> None:
        if self._upload_error is not None:
            raise self._upload_error
        
        chunks = []
        while True:
            chunk = content.read(self._chunk_size)
            if not chunk:
                break
            chunks.append(chunk)
        data = b"".join(chunks)
        
        if size_hint >= 0 and len(data) != size_hint:
            raise StorageError(
                f"Content length mismatch: expected {size_hint}, got {len(data)}",
                details={"storage_path": path}
            )
        
        async with self._lock:
            self._objects[path] = data
    
    async def get(self, path: str) -> BinaryIO:
        async with self._lock:
            if path not in self._objects:
                raise ObjectNotFoundError(storage_path=path)
            return io.BytesIO(self._objects[path])
    
    async def delete(self, path: str) -> None:
        if path in self._path_failures:
            raise self._path_failures[path]
        async with self._lock:
            self._objects.pop(path, None)
    
    async def batch_delete(self, *paths: str) -> List[NotDeletedResult]:
        self.batch_delete_calls.append(list(paths))
        if not paths:
            return []
        if self._batch_error is not None:
            raise self._batch_error
        
        not_deleted = []
        async with self._lock:
            for path in dict.fromkeys(paths):
                if path in self._path_failures:
                    not_deleted.append(NotDeletedResult(path=path, cause=self._path_failures[path]))
                    continue
                self._objects.pop(path, None)
        return not_deleted
