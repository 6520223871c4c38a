"""Tests for the S3 storage provider against a stubbed boto3 client."""

import io

import boto3
import pytest
from botocore.config import Config
from botocore.stub import Stubber

from shelffy.core.exceptions import ObjectNotFoundError, StorageError
from shelffy.platform.storage.infrastructure.providers.s3_storage_provider import S3StorageProvider


BUCKET = "books"


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        config=Config(
            request_checksum_calculation="when_required",
            response_checksum_validation="when_required",
        ),
    )


@pytest.fixture
def stubber(s3_client):
    with Stubber(s3_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def provider(s3_client, stubber):
    return S3StorageProvider(s3_client, BUCKET, delete_wait_seconds=2, max_batch_keys=2)


class TestS3StorageProvider:
    """S3 provider request mapping and error translation."""
    
    @pytest.mark.asyncio
    async def test_get_returns_body(self, provider, stubber):
        body = io.BytesIO(b"helloworld")
        stubber.add_response("get_object", {"Body": body}, {"Bucket": BUCKET, "Key": "u1/b1"})
        
        stream = await provider.get("u1/b1")
        
        assert stream.read() == b"helloworld"
    
    @pytest.mark.asyncio
    async def test_get_missing_key_raises_not_found(self, provider, stubber):
        stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
        
        with pytest.raises(ObjectNotFoundError):
            await provider.get("missing")
    
    @pytest.mark.asyncio
    async def test_get_other_error_raises_storage_error(self, provider, stubber):
        stubber.add_client_error("get_object", service_error_code="AccessDenied", http_status_code=403)
        
        with pytest.raises(StorageError):
            await provider.get("u1/b1")
    
    @pytest.mark.asyncio
    async def test_delete_waits_for_absence(self, provider, stubber):
        stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "u1/b1"})
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)
        
        await provider.delete("u1/b1")
    
    @pytest.mark.asyncio
    async def test_batch_delete_empty_makes_no_request(self, provider):
        assert await provider.batch_delete() == []
    
    @pytest.mark.asyncio
    async def test_batch_delete_reports_partial_failures(self, provider, stubber):
        stubber.add_response(
            "delete_objects",
            {"Errors": [{"Key": "p2", "Code": "AccessDenied", "Message": "Access Denied"}]},
            {
                "Bucket": BUCKET,
                "Delete": {"Objects": [{"Key": "p1"}, {"Key": "p2"}], "Quiet": True},
            },
        )
        
        result = await provider.batch_delete("p1", "p2")
        
        assert len(result) == 1
        assert result[0].path == "p2"
        assert isinstance(result[0].cause, StorageError)
        assert result[0].cause.error_code == "AccessDenied"
    
    @pytest.mark.asyncio
    async def test_batch_delete_chunks_and_dedupes(self, provider, stubber):
        stubber.add_response(
            "delete_objects",
            {},
            {"Bucket": BUCKET, "Delete": {"Objects": [{"Key": "a"}, {"Key": "b"}], "Quiet": True}},
        )
        stubber.add_response(
            "delete_objects",
            {},
            {"Bucket": BUCKET, "Delete": {"Objects": [{"Key": "c"}], "Quiet": True}},
        )
        
        assert await provider.batch_delete("a", "b", "a", "c") == []
    
    @pytest.mark.asyncio
    async def test_batch_delete_first_chunk_failure_raises(self, provider, stubber):
        stubber.add_client_error("delete_objects", service_error_code="InternalError", http_status_code=500)
        
        with pytest.raises(StorageError):
            await provider.batch_delete("a", "b", "c")
    
    @pytest.mark.asyncio
    async def test_batch_delete_later_chunk_failure_is_partial(self, provider, stubber):
        stubber.add_response("delete_objects", {})
        stubber.add_client_error("delete_objects", service_error_code="InternalError", http_status_code=500)
        
        result = await provider.batch_delete("a", "b", "c")
        
        assert [r.path for r in result] == ["c"]
    
    @pytest.mark.asyncio
    async def test_ensure_bucket_creates_missing_bucket(self, provider, stubber):
        stubber.add_client_error("head_bucket", service_error_code="404", http_status_code=404)
        stubber.add_response("create_bucket", {}, {"Bucket": BUCKET})
        
        await provider.ensure_bucket()
    
    @pytest.mark.asyncio
    async def test_ensure_bucket_existing(self, provider, stubber):
        stubber.add_response("head_bucket", {}, {"Bucket": BUCKET})
        
        await provider.ensure_bucket()
