"""Storage protocols."""

from .storage_provider import StorageProviderProtocol

__all__ = ["StorageProviderProtocol"]
