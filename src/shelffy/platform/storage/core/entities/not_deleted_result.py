"""Not-deleted result entity.

ONLY batch-deletion partial failure - one key the store could not remove
together with the reason.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class NotDeletedResult:
    """A key that survived a batch deletion.
    
    Partial failure is reported as data: a batch call that removed some
    keys and not others returns these records instead of raising.
    """
    
    path: str
    cause: Exception
    
    def __str__(self) -> str:
        return f"{self.path}: {self.cause}"
