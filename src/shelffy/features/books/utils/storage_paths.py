"""Storage key assignment for book payloads."""

from uuid import UUID, uuid4


def build_storage_path(owner_id: UUID) -> str:
    """Return a fresh object key ``{owner_id}/{uuid4}``.
    
    Never derived from the title, so concurrent uploads by one owner
    can't collide and caller text can't shape the key.
    """
    return f"{owner_id}/{uuid4()}"
