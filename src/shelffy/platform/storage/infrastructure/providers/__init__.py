"""Storage provider implementations."""

from .memory_storage_provider import MemoryStorageProvider
from .s3_storage_provider import (
    S3StorageProvider,
    create_s3_client,
    create_s3_storage_provider,
)

__all__ = [
    "MemoryStorageProvider",
    "S3StorageProvider",
    "create_s3_client",
    "create_s3_storage_provider",
]
