"""Book domain entity."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from ....config.constants import BOOK_HASH_SIZE


@dataclass
class Book:
    """Book metadata row.
    
    ``storage_path`` and ``content_hash`` are assigned by the lifecycle
    service during upload and never taken from the caller. Matches the
    books table structure.
    """
    
    title: str
    uploaded_by: UUID
    id: Optional[UUID] = None
    storage_path: str = ""
    content_hash: bytes = b""
    uploaded_at: Optional[datetime] = None
    
    @property
    def hash_hex(self) -> str:
        """Hex encoding of the SHA-256 content digest."""
        return self.content_hash.hex()
    
    @property
    def is_persisted(self) -> bool:
        return self.id is not None and self.uploaded_at is not None
    
    @property
    def has_valid_hash(self) -> bool:
        return len(self.content_hash) == BOOK_HASH_SIZE
