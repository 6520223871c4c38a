"""Streaming content digest."""

import hashlib
from typing import BinaryIO


class HashingReader:
    """Read-through wrapper feeding every byte read into SHA-256.
    
    Handed to the object store in place of the caller's stream, so the
    digest is computed in the same pass as the upload without buffering
    the payload.
    """
    
    def __init__(self, raw: BinaryIO):
        self._raw = raw
        self._hash = hashlib.sha256()
        self.bytes_read = 0
    
    def read(self, size: int = -1) -> bytes:
        chunk = self._raw.read(size)
        if chunk:
            self._hash.update(chunk)
            self.bytes_read += len(chunk)
        return chunk
    
    def readable(self) -> bool:
        return True
    
    def seekable(self) -> bool:
        # A rewind would feed the same bytes into the digest twice
        return False
    
    def digest(self) -> bytes:
        return self._hash.digest()
    
    def hexdigest(self) -> str:
        return self._hash.hexdigest()
