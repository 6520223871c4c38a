"""Storage entities."""

from .not_deleted_result import NotDeletedResult

__all__ = ["NotDeletedResult"]
