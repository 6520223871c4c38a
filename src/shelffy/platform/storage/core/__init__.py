"""Storage core: protocols and entities."""

from .entities import NotDeletedResult
from .protocols import StorageProviderProtocol

__all__ = ["NotDeletedResult", "StorageProviderProtocol"]
