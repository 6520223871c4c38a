"""Storage provider protocol.

ONLY storage backend contract - defines the interface every object store
implementation follows, including the in-memory one used by tests.
"""

from typing import BinaryIO, List
from typing_extensions import Protocol, runtime_checkable

from ..entities.not_deleted_result import NotDeletedResult


@runtime_checkable
class StorageProviderProtocol(Protocol):
    """Storage provider protocol.
    
    Keys are opaque strings. Every operation may be called concurrently
    from request tasks and the reconciliation loop.
    """
    
    async def upload(self, path: str, size_hint: int, content: BinaryIO) -> None:
        """Stream content to the named key.
        
        Args:
            path: Object key
            size_hint: Expected content length in bytes, negative if unknown.
                Advisory - the backend uses it for length validation.
            content: Readable binary stream, consumed once
        
        Raises:
            StorageError: On transport failure. An existing key is overwritten.
        """
        ...
    
    async def get(self, path: str) -> BinaryIO:
        """Open the object for reading.
        
        Args:
            path: Object key
        
        Returns:
            Readable stream; the caller must close it
        
        Raises:
            ObjectNotFoundError: If the key is absent
            StorageError: On any other failure
        """
        ...
    
    async def delete(self, path: str) -> None:
        """Delete one object, idempotently.
        
        Args:
            path: Object key
        
        Raises:
            ObjectNotFoundError: Only when the backend proves absence
            StorageError: On any other failure
        """
        ...
    
    async def batch_delete(self, *paths: str) -> List[NotDeletedResult]:
        """Delete many objects in one call.
        
        Args:
            *paths: Zero or more object keys. Zero keys is a no-op.
        
        Returns:
            Keys that could not be removed, with their cause. Keys that
            were removed (or never existed) are absent from the list.
        
        Raises:
            StorageError: Only when the call failed entirely
        """
        ...
