from __future__ import annotations

import io

import boto3
import pytest
from botocore.exceptions import ClientError

from s3_storage.core.config import MIN_PART_SIZE
from s3_storage.integrations.object_storage_client import ObjectStorageClient, StorageConfig
from s3_storage.integrations.storage_exceptions import BucketAccessError
from s3_storage.schemas.file import UploadedFile
from s3_storage.services.content_type import AUTO_CONTENT_TYPE
from s3_storage.services.s3_storage import S3Storage
from tests.fakes import TEST_BUCKET_NAME, async_chunks


@pytest.fixture
def s3_client(mocked_aws):
    return boto3.client("s3", region_name="us-east-1")


@pytest.fixture
def storage_client(mocked_aws):
    return ObjectStorageClient(StorageConfig(region="us-east-1"))


@pytest.mark.asyncio
async def test_store_and_read_back(s3_client, storage_client):
    storage = S3Storage(
        s3=storage_client,
        bucket=TEST_BUCKET_NAME,
        key="docs/hello.txt",
        content_type="text/plain",
        metadata={"owner": "alice"},
    )

    stored = await storage.store(None, UploadedFile(stream=io.BytesIO(b"hello moto"), originalname="hello.txt"))

    obj = s3_client.get_object(Bucket=TEST_BUCKET_NAME, Key="docs/hello.txt")
    assert obj["Body"].read() == b"hello moto"
    assert obj["ContentType"] == "text/plain"
    assert obj["Metadata"] == {"owner": "alice"}
    assert stored.size == 10
    assert stored.etag == obj["ETag"]
    assert stored.location.endswith(f"/{TEST_BUCKET_NAME}/docs/hello.txt")


@pytest.mark.asyncio
async def test_remove_deletes_stored_object(s3_client, storage_client):
    storage = S3Storage(s3=storage_client, bucket=TEST_BUCKET_NAME)
    stored = await storage.store(None, UploadedFile(stream=b"short-lived"))

    await storage.remove(None, stored)
    await storage.remove(None, stored)

    with pytest.raises(ClientError) as exc_info:
        s3_client.get_object(Bucket=TEST_BUCKET_NAME, Key=stored.key)
    assert exc_info.value.response["Error"]["Code"] == "NoSuchKey"


@pytest.mark.asyncio
async def test_multipart_upload_round_trip(s3_client, storage_client):
    body = b"a" * MIN_PART_SIZE + b"b" * 1024
    storage = S3Storage(s3=storage_client, bucket=TEST_BUCKET_NAME, key="big.bin", part_size=MIN_PART_SIZE)
    chunks = [body[i:i + 256 * 1024] for i in range(0, len(body), 256 * 1024)]

    stored = await storage.store(None, UploadedFile(stream=async_chunks(chunks)))

    obj = s3_client.get_object(Bucket=TEST_BUCKET_NAME, Key="big.bin")
    assert obj["Body"].read() == body
    assert stored.size == len(body)
    assert stored.etag.endswith('-2"')


@pytest.mark.asyncio
async def test_auto_content_type_against_moto(s3_client, storage_client):
    svg = b'<?xml version="1.0"?><!-- logo --><svg xmlns="http://www.w3.org/2000/svg"><rect/></svg>'
    storage = S3Storage(s3=storage_client, bucket=TEST_BUCKET_NAME, key="logo.svg", content_type=AUTO_CONTENT_TYPE)

    stored = await storage.store(None, UploadedFile(stream=async_chunks([svg[:80], svg[80:]])))

    obj = s3_client.get_object(Bucket=TEST_BUCKET_NAME, Key="logo.svg")
    assert stored.content_type == "image/svg+xml"
    assert obj["ContentType"] == "image/svg+xml"
    assert obj["Body"].read() == svg


@pytest.mark.asyncio
async def test_head_bucket_reports_missing_bucket(storage_client):
    await storage_client.head_bucket_async(TEST_BUCKET_NAME)

    with pytest.raises(BucketAccessError) as exc_info:
        await storage_client.head_bucket_async("no-such-bucket")
    assert exc_info.value.metadata == {"bucket": "no-such-bucket"}


@pytest.mark.asyncio
async def test_body_of_exactly_one_part_reports_full_size(s3_client, storage_client):
    body = b"c" * MIN_PART_SIZE
    storage = S3Storage(s3=storage_client, bucket=TEST_BUCKET_NAME, key="exact.bin")

    stored = await storage.store(None, UploadedFile(stream=io.BytesIO(body)))

    obj = s3_client.head_object(Bucket=TEST_BUCKET_NAME, Key="exact.bin")
    assert obj["ContentLength"] == MIN_PART_SIZE
    assert stored.size == MIN_PART_SIZE
    assert stored.etag == obj["ETag"]
