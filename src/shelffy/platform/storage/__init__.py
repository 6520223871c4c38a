"""Object store platform module.

Uniform put/get/delete/batch-delete over a content bucket, with an S3
implementation and an in-memory one sharing the same contract.
"""

from .core import NotDeletedResult, StorageProviderProtocol
from .infrastructure import (
    MemoryStorageProvider,
    S3StorageProvider,
    create_s3_client,
    create_s3_storage_provider,
)

__all__ = [
    "NotDeletedResult",
    "StorageProviderProtocol",
    "MemoryStorageProvider",
    "S3StorageProvider",
    "create_s3_client",
    "create_s3_storage_provider",
]
