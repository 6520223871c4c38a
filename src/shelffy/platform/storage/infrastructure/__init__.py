"""Storage infrastructure."""

from .providers import (
    MemoryStorageProvider,
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
