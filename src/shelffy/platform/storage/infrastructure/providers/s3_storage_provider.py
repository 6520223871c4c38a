"""S3-compatible storage provider (AWS S3, MinIO, Cloudflare R2).

boto3 is blocking, so every call is dispatched to the default executor
to keep the event loop free for request tasks and the reconciliation loop.
"""

import asyncio
import logging
from functools import partial
from typing import Any, BinaryIO, Callable, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from .....config.constants import StorageLimits
from .....config.settings import ShelffySettings
from .....core.exceptions import ObjectNotFoundError, StorageError
from ...core.entities.not_deleted_result import NotDeletedResult
from ...core.protocols.storage_provider import StorageProviderProtocol


logger = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})
MISSING_BUCKET_CODES = frozenset({"NoSuchBucket", "NotFound", "404"})


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class _LengthCheckedReader:
    """Forward-only reader that fails once more than ``limit`` bytes are read."""
    
    def __init__(self, raw: BinaryIO, limit: int):
        self._raw = raw
        self._limit = limit
        self.bytes_read = 0
    
    def read(self, size: int = -1) -> bytes:
        chunk = self._raw.read(size)
        self.bytes_read += len(chunk)
        if self.bytes_read > self._limit:
            raise StorageError(f"Content is longer than the declared {self._limit} bytes")
        return chunk
    
    def readable(self) -> bool:
        return True
    
    def seekable(self) -> bool:
        return False


class S3StorageProvider(StorageProviderProtocol):
    """Store book payloads in an S3-compatible bucket."""
    
    def __init__(
        self,
        client: Any,
        bucket: str,
        delete_wait_seconds: int = StorageLimits.DELETE_WAIT_SECONDS,
        max_batch_keys: int = StorageLimits.MAX_BATCH_DELETE_KEYS
    ):
        """Initialize S3 storage provider.
        
        Args:
            client: boto3 S3 client
            bucket: Bucket holding book payloads
            delete_wait_seconds: Upper bound for confirming a single delete
            max_batch_keys: Keys per DeleteObjects request
        """
        self._client = client
        self._bucket = bucket
        self._delete_wait_seconds = delete_wait_seconds
        self._max_batch_keys = max_batch_keys
    
    @property
    def bucket(self) -> str:
        return self._bucket
    
    async def _run(self, func: Callable, *args, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))
    
    async def ensure_bucket(self) -> None:
        """Create the bucket if it doesn't exist."""
        try:
            await self._run(self._client.head_bucket, Bucket=self._bucket)
            return
        except ClientError as e:
            if _error_code(e) not in MISSING_BUCKET_CODES:
                logger.error(f"Failed to inspect bucket '{self._bucket}': {e}")
                raise StorageError(f"Failed to inspect bucket: {e}") from e
        except BotoCoreError as e:
            logger.error(f"Failed to inspect bucket '{self._bucket}': {e}")
            raise StorageError(f"Failed to inspect bucket: {e}") from e
        
        try:
            await self._run(self._client.create_bucket, Bucket=self._bucket)
            logger.info(f"Created bucket '{self._bucket}'")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to create bucket '{self._bucket}': {e}")
            raise StorageError(f"Failed to create bucket: {e}") from e
    
    async def upload(self, path: str, size_hint: int, content: BinaryIO) -> None:
        """Upload content to the key, overwriting any existing object.
        
        Every upload goes through the managed transfer, which reads the
        stream once in bounded chunks and hands botocore bodies it can sign.
        A known size (non-negative hint) is enforced on the bytes read: a
        longer stream aborts the transfer, a shorter one removes the object
        it wrote and fails.
        """
        body = _LengthCheckedReader(content, size_hint) if size_hint >= 0 else content
        try:
            await self._run(self._client.upload_fileobj, body, self._bucket, path)
        except StorageError as e:
            logger.error(f"Failed to upload object '{path}' to '{self._bucket}': {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to upload object '{path}' to '{self._bucket}': {e}")
            raise StorageError(
                f"Failed to upload object: {e}",
                details={"storage_path": path}
            ) from e
        
        if size_hint >= 0 and body.bytes_read != size_hint:
            await self._discard(path)
            logger.error(f"Short upload of '{path}': expected {size_hint} bytes, read {body.bytes_read}")
            raise StorageError(
                f"Content ended after {body.bytes_read} of {size_hint} bytes",
                details={"storage_path": path}
            )
        
        logger.debug(f"Uploaded object '{path}' ({size_hint} bytes hinted)")
    
    async def _discard(self, path: str) -> None:
        try:
            await self._run(self._client.delete_object, Bucket=self._bucket, Key=path)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to remove partial object '{path}': {e}")
    
    async def get(self, path: str) -> BinaryIO:
        """Return the streaming body of the object without reading it."""
        try:
            response = await self._run(self._client.get_object, Bucket=self._bucket, Key=path)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                raise ObjectNotFoundError(storage_path=path) from e
            logger.error(f"Failed to get object '{path}': {e}")
            raise StorageError(f"Failed to get object: {e}", details={"storage_path": path}) from e
        except BotoCoreError as e:
            logger.error(f"Failed to get object '{path}': {e}")
            raise StorageError(f"Failed to get object: {e}", details={"storage_path": path}) from e
        
        return response["Body"]
    
    async def delete(self, path: str) -> None:
        """Delete the object and wait until the store reports it absent."""
        try:
            await self._run(self._client.delete_object, Bucket=self._bucket, Key=path)
        except ClientError as e:
            if _error_code(e) == "NoSuchKey":
                raise ObjectNotFoundError(storage_path=path) from e
            logger.error(f"Failed to delete object '{path}': {e}")
            raise StorageError(f"Failed to delete object: {e}", details={"storage_path": path}) from e
        except BotoCoreError as e:
            logger.error(f"Failed to delete object '{path}': {e}")
            raise StorageError(f"Failed to delete object: {e}", details={"storage_path": path}) from e
        
        waiter = self._client.get_waiter("object_not_exists")
        try:
            await self._run(
                waiter.wait,
                Bucket=self._bucket,
                Key=path,
                WaiterConfig={"Delay": 1, "MaxAttempts": self._delete_wait_seconds},
            )
        except WaiterError as e:
            logger.error(f"Object '{path}' still present after delete: {e}")
            raise StorageError(
                f"Object still present after delete: {e}",
                details={"storage_path": path}
            ) from e
    
    async def batch_delete(self, *paths: str) -> List[NotDeletedResult]:
        """Delete objects with DeleteObjects in quiet mode.
        
        Returns:
            Keys reported in the response ``Errors`` list, plus every key
            of a chunk whose request failed after an earlier chunk went
            through.
        
        Raises:
            StorageError: If the first request fails, i.e. nothing was deleted
        """
        if not paths:
            return []
        
        unique_paths = list(dict.fromkeys(paths))
        not_deleted: List[NotDeletedResult] = []
        
        for index, start in enumerate(range(0, len(unique_paths), self._max_batch_keys)):
            chunk = unique_paths[start:start + self._max_batch_keys]
            try:
                response = await self._run(
                    self._client.delete_objects,
                    Bucket=self._bucket,
                    Delete={"Objects": [{"Key": path} for path in chunk], "Quiet": True},
                )
            except (ClientError, BotoCoreError) as e:
                if index == 0:
                    logger.error(f"Batch delete of {len(unique_paths)} objects failed: {e}")
                    raise StorageError(f"Batch delete failed: {e}") from e
                logger.error(f"Batch delete chunk of {len(chunk)} objects failed: {e}")
                not_deleted.extend(
                    NotDeletedResult(path=path, cause=StorageError(f"Batch delete failed: {e}"))
                    for path in chunk
                )
                continue
            
            for error in response.get("Errors", []):
                key = error.get("Key", "")
                message = error.get("Message") or error.get("Code") or "unknown error"
                not_deleted.append(NotDeletedResult(
                    path=key,
                    cause=StorageError(message, error_code=error.get("Code"), details={"storage_path": key}),
                ))
        
        logger.debug(
            f"Batch deleted {len(unique_paths) - len(not_deleted)}/{len(unique_paths)} objects "
            f"from '{self._bucket}'"
        )
        return not_deleted


def create_s3_client(
    endpoint_url: Optional[str] = None,
    region: str = "auto",
    access_key_id: Optional[str] = None,
    secret_access_key: Optional[str] = None
) -> Any:
    """Build a boto3 S3 client for an S3-compatible endpoint.
    
    Checksums are only computed when an operation requires them;
    several S3-compatible stores reject the newer default trailers.
    """
    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        region_name=region,
        aws_access_key_id=access_key_id,
        aws_secret_access_key=secret_access_key,
        config=Config(
            request_checksum_calculation="when_required",
            response_checksum_validation="when_required",
        ),
    )


def create_s3_storage_provider(settings: ShelffySettings) -> S3StorageProvider:
    """Create S3 storage provider from settings."""
    client = create_s3_client(
        endpoint_url=settings.s3_endpoint_url,
        region=settings.s3_region,
        access_key_id=(
            settings.s3_access_key_id.get_secret_value() if settings.s3_access_key_id else None
        ),
        secret_access_key=(
            settings.s3_secret_access_key.get_secret_value() if settings.s3_secret_access_key else None
        ),
    )
    logger.info(f"S3 storage initialized: bucket={settings.s3_books_bucket}, endpoint={settings.s3_endpoint_url}")
    return S3StorageProvider(
        client=client,
        bucket=settings.s3_books_bucket,
        delete_wait_seconds=settings.s3_delete_wait_seconds,
    )
