"""
Object Storage Client

S3-compatible object storage client used by the upload engine. Wraps a
boto3 S3 client and streams upload bodies through boto3's managed
transfer (``upload_fileobj``), reporting progress events as bytes are
acknowledged.

boto3 is synchronous; every request runs through ``asyncio.to_thread`` so
the event loop keeps serving other uploads while a transfer is running.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.client import Config
from botocore.exceptions import ClientError

from s3_storage.core.config import MIN_PART_SIZE, Settings, get_settings
from s3_storage.core.logging import get_logger
from s3_storage.integrations.storage_exceptions import (
    BucketAccessError,
    DeleteError,
    StorageConnectionError,
    UploadError,
)
from s3_storage.integrations.storage_utils import (
    AsyncStreamReader,
    build_object_location,
    format_storage_size,
    iter_stream_chunks,
)

logger = get_logger(__name__)


@dataclass
class StorageConfig:
    """Configuration for object storage client."""

    endpoint_url: Optional[str] = None
    region: str = "us-east-1"
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    use_ssl: bool = True
    connect_timeout: int = 30
    read_timeout: int = 60
    max_attempts: int = 3
    part_size: int = MIN_PART_SIZE
    queue_size: int = 4
    chunk_size: int = 64 * 1024

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "StorageConfig":
        """
        Load configuration from application settings.

        Args:
            settings: Settings instance (defaults to the environment singleton)

        Returns:
            StorageConfig instance
        """
        settings = settings or get_settings()
        return cls(
            endpoint_url=settings.s3_endpoint_url or None,
            region=settings.s3_region,
            access_key=settings.s3_access_key or None,
            secret_key=settings.s3_secret_key or None,
            use_ssl=settings.s3_use_ssl,
            connect_timeout=settings.s3_connect_timeout,
            read_timeout=settings.s3_read_timeout,
            max_attempts=settings.s3_max_attempts,
            part_size=settings.upload_part_size,
            queue_size=settings.upload_queue_size,
            chunk_size=settings.stream_chunk_size,
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.part_size < MIN_PART_SIZE:
            raise ValueError(f"Part size must be at least {MIN_PART_SIZE} bytes")

        if self.queue_size < 1:
            raise ValueError("Queue size must be at least 1")

        if self.chunk_size < 1:
            raise ValueError("Chunk size must be at least 1 byte")

        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise ValueError("Timeouts must be positive")


@dataclass(frozen=True)
class ProgressEvent:
    """
    Progress notification for one acknowledged byte increment.

    ``part`` is the part the acknowledged bytes reached; ``total`` is the body
    length once the whole body has been read, otherwise None.
    """

    loaded: int
    total: Optional[int]
    part: int
    bucket: str
    key: str


ProgressListener = Callable[[ProgressEvent], None]


@dataclass
class StreamingUpload:
    """
    One streaming write of a body to S3 through boto3's managed transfer.

    The body is exposed to ``upload_fileobj`` as a blocking reader running
    in a worker thread. A body shorter than ``part_size`` is sent with a
    single PUT; anything longer becomes a multipart upload with up to
    ``queue_size`` parts in flight, aborted by s3transfer when a part fails.
    """

    client: Any
    params: Dict[str, Any]
    part_size: int = MIN_PART_SIZE
    queue_size: int = 4
    chunk_size: int = 64 * 1024
    _listeners: List[ProgressListener] = field(default_factory=list, init=False, repr=False)
    _started: bool = field(default=False, init=False, repr=False)
    _loaded: int = field(default=0, init=False, repr=False)
    _total_reported: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.part_size < MIN_PART_SIZE:
            raise ValueError(f"partSize must be at least {MIN_PART_SIZE} bytes, got {self.part_size}")
        if self.queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        for required in ("Bucket", "Key"):
            if not self.params.get(required):
                raise ValueError(f"{required} is required for an upload")

    @property
    def bucket(self) -> str:
        return self.params["Bucket"]

    @property
    def key(self) -> str:
        return self.params["Key"]

    def on_progress(self, listener: ProgressListener) -> None:
        """Register a listener called with a ProgressEvent as bytes are acknowledged."""
        self._listeners.append(listener)

    def _advance(self, amount: int, total: Optional[int]) -> None:
        self._loaded += amount
        if total is not None:
            self._total_reported = True
        event = ProgressEvent(
            loaded=self._loaded,
            total=total,
            part=max(1, -(-self._loaded // self.part_size)),
            bucket=self.bucket,
            key=self.key,
        )
        for listener in self._listeners:
            listener(event)

    def _extra_args(self) -> Dict[str, Any]:
        # boto3 rejects None for optional members, so unset fields are dropped
        return {
            name: value
            for name, value in self.params.items()
            if value is not None and name not in ("Body", "Bucket", "Key")
        }

    def _transfer_config(self) -> TransferConfig:
        return TransferConfig(
            multipart_threshold=self.part_size,
            multipart_chunksize=self.part_size,
            max_concurrency=self.queue_size,
            max_in_memory_upload_chunks=self.queue_size,
            use_threads=True,
        )

    async def done(self) -> Dict[str, Any]:
        """
        Send the body and wait for the backend to acknowledge it.

        Returns:
            Dictionary with ETag, Location, VersionId, Bucket, Key and Size

        Raises:
            UploadError: If reading the body or any backend request fails
            RuntimeError: If called more than once
        """
        if self._started:
            raise RuntimeError("done() may only be awaited once per upload")
        self._started = True

        loop = asyncio.get_running_loop()
        reader = AsyncStreamReader(iter_stream_chunks(self.params.get("Body"), self.chunk_size), loop)

        def progress(amount: int) -> None:
            # s3transfer calls back from its worker threads
            loop.call_soon_threadsafe(self._advance, amount, reader.total)

        logger.debug(
            "stream_upload_started",
            bucket=self.bucket,
            key=self.key,
            part_size=format_storage_size(self.part_size),
        )

        try:
            await asyncio.to_thread(
                self.client.upload_fileobj,
                reader,
                self.bucket,
                self.key,
                ExtraArgs=self._extra_args(),
                Callback=progress,
                Config=self._transfer_config(),
            )
            head = await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=self.key)
        except Exception as e:
            logger.error("stream_upload_failed", bucket=self.bucket, key=self.key, error=str(e))
            raise UploadError(self.bucket, self.key, original_exception=e, size=self._loaded) from e

        size = reader.bytes_read
        if not self._total_reported:
            # progress never saw the end of the body (exact part multiples, empty bodies)
            self._advance(size - self._loaded, size)

        logger.info("stream_upload_completed", bucket=self.bucket, key=self.key, size=format_storage_size(size))

        endpoint_url = getattr(getattr(self.client, "meta", None), "endpoint_url", None)
        return {
            "ETag": head.get("ETag"),
            "Location": build_object_location(endpoint_url, self.bucket, self.key),
            "VersionId": head.get("VersionId"),
            "Bucket": self.bucket,
            "Key": self.key,
            "Size": size,
        }


class ObjectStorageClient:
    """
    S3-compatible object storage client for the upload engine.

    Shared by every upload; holds no per-upload state.
    """

    def __init__(self, config: Optional[StorageConfig] = None, s3_client: Any = None):
        """
        Initialize object storage client.

        Args:
            config: Storage configuration (defaults to loading from settings)
            s3_client: Pre-built boto3 S3 client; one is created from config when omitted
        """
        self.config = config or StorageConfig.from_settings()
        self.config.validate()

        if s3_client is not None:
            self.s3_client = s3_client
            return

        boto_config = Config(
            connect_timeout=self.config.connect_timeout,
            read_timeout=self.config.read_timeout,
            retries={"max_attempts": self.config.max_attempts, "mode": "standard"},
            signature_version="s3v4",
        )

        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=self.config.endpoint_url,
                aws_access_key_id=self.config.access_key,
                aws_secret_access_key=self.config.secret_key,
                region_name=self.config.region,
                use_ssl=self.config.use_ssl,
                config=boto_config,
            )
            logger.info(
                "object_storage_client_initialized",
                endpoint=self.config.endpoint_url or "aws",
                region=self.config.region,
            )
        except Exception as e:
            logger.error("failed_to_initialize_storage_client", error=str(e))
            raise StorageConnectionError(self.config.endpoint_url, original_exception=e) from e

    def create_upload(
        self,
        params: Dict[str, Any],
        part_size: Optional[int] = None,
        queue_size: Optional[int] = None,
    ) -> StreamingUpload:
        """
        Prepare a streaming upload.

        Args:
            params: put_object style parameters including Body, Bucket and Key
            part_size: Multipart chunk size (defaults to config value)
            queue_size: Parts in flight (defaults to config value)

        Returns:
            StreamingUpload ready to be awaited with done()
        """
        return StreamingUpload(
            client=self.s3_client,
            params=params,
            part_size=part_size or self.config.part_size,
            queue_size=queue_size or self.config.queue_size,
            chunk_size=self.config.chunk_size,
        )

    async def upload_stream_async(
        self,
        bucket: str,
        key: str,
        body: Any,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        part_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Stream a body to storage without progress tracking.

        Args:
            bucket: Bucket name
            key: Object key
            body: Bytes, file object or (async) iterable of bytes
            content_type: MIME type of the object
            metadata: User metadata
            part_size: Multipart chunk size (defaults to config value)

        Returns:
            Dictionary with etag, location, version_id and size

        Raises:
            UploadError: If the upload fails
        """
        upload = self.create_upload(
            {
                "Bucket": bucket,
                "Key": key,
                "Body": body,
                "ContentType": content_type,
                "Metadata": metadata,
            },
            part_size=part_size,
        )
        result = await upload.done()
        return {
            "etag": result["ETag"],
            "location": result["Location"],
            "version_id": result["VersionId"],
            "size": result["Size"],
        }

    async def delete_object_async(self, bucket: str, key: str) -> None:
        """
        Delete an object and wait for the backend response.

        Args:
            bucket: Bucket name
            key: Object key

        Raises:
            DeleteError: If the delete request fails
        """
        try:
            logger.info("deleting_object", bucket=bucket, key=key)
            await asyncio.to_thread(self.s3_client.delete_object, Bucket=bucket, Key=key)
            logger.info("object_deleted", bucket=bucket, key=key)
        except Exception as e:
            logger.error("object_deletion_failed", bucket=bucket, key=key, error=str(e))
            raise DeleteError(bucket, key, original_exception=e) from e

    async def head_bucket_async(self, bucket: str) -> None:
        """
        Check that a bucket exists and is reachable with the current credentials.

        Args:
            bucket: Bucket name

        Raises:
            BucketAccessError: If the bucket is missing or access is denied
        """
        try:
            await asyncio.to_thread(self.s3_client.head_bucket, Bucket=bucket)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            logger.error("bucket_access_error", bucket=bucket, code=error_code, error=str(e))
            raise BucketAccessError(bucket, original_exception=e) from e
