"""
S3 Storage Engine

Resolves per-upload options, streams the file body to S3 and reports the
stored object back to the host. Also removes previously stored objects.
"""

import asyncio
import secrets
from typing import Any, Callable, Dict, Optional

from s3_storage.core.logging import get_logger
from s3_storage.integrations.object_storage_client import ObjectStorageClient, ProgressEvent
from s3_storage.schemas.storage import StoredFile, UploadParameters
from s3_storage.services.content_type import DEFAULT_CONTENT_TYPE_VALUE
from s3_storage.services.options import OptionProducer, resolve_option, with_default

logger = get_logger(__name__)

DEFAULT_ACL = "private"
DEFAULT_STORAGE_CLASS = "STANDARD"

# Order in which options are resolved and stored in the parameter bundle
OPTION_FIELDS = (
    "acl",
    "bucket",
    "cache_control",
    "content_disposition",
    "content_encoding",
    "content_type",
    "key",
    "metadata",
    "part_size",
    "server_side_encryption",
    "sse_kms_key_id",
    "storage_class",
    "tagging",
)

# camelCase names accepted by the s3_storage() factory
OPTION_ALIASES = {
    "cacheControl": "cache_control",
    "contentDisposition": "content_disposition",
    "contentEncoding": "content_encoding",
    "contentType": "content_type",
    "partSize": "part_size",
    "serverSideEncryption": "server_side_encryption",
    "sseKmsKeyId": "sse_kms_key_id",
    "storageClass": "storage_class",
}


async def default_key(context: Any, file: Any) -> str:
    """Random 16-byte object key rendered as 32 hex characters."""
    return secrets.token_hex(16)


class S3Storage:
    """Storage engine streaming uploaded files to an S3 bucket."""

    def __init__(
        self,
        s3: Any,
        bucket: Any,
        acl: Any = None,
        cache_control: Any = None,
        content_disposition: Any = None,
        content_encoding: Any = None,
        content_type: Any = None,
        key: Any = None,
        metadata: Any = None,
        part_size: Any = None,
        server_side_encryption: Any = None,
        sse_kms_key_id: Any = None,
        storage_class: Any = None,
        tagging: Any = None,
    ):
        """
        Initialize the storage engine.

        Every option except ``s3`` may be a static value, an awaitable
        producer ``(context, file)`` or a callback producer
        ``(context, file, callback)``.

        Args:
            s3: ObjectStorageClient, or a boto3 S3 client to wrap in one
            bucket: Target bucket (required)
            acl: Canned ACL (default "private")
            content_type: MIME type (default "application/octet-stream")
            key: Object key (default: random 32-character hex string)
            storage_class: Storage class (default "STANDARD")
            part_size: Multipart chunk size (default: client configuration)

        Raises:
            ValueError: If s3 or bucket is missing
        """
        if s3 is None:
            raise ValueError("s3 client is required")
        if bucket is None:
            raise ValueError("bucket is required")

        self.s3 = s3 if isinstance(s3, ObjectStorageClient) else ObjectStorageClient(s3_client=s3)

        configured = {
            "acl": with_default(acl, DEFAULT_ACL),
            "bucket": bucket,
            "cache_control": cache_control,
            "content_disposition": content_disposition,
            "content_encoding": content_encoding,
            "content_type": with_default(content_type, DEFAULT_CONTENT_TYPE_VALUE),
            "key": with_default(key, default_key),
            "metadata": metadata,
            "part_size": part_size,
            "server_side_encryption": server_side_encryption,
            "sse_kms_key_id": sse_kms_key_id,
            "storage_class": with_default(storage_class, DEFAULT_STORAGE_CLASS),
            "tagging": tagging,
        }
        self._producers: Dict[str, OptionProducer] = {
            name: resolve_option(configured[name]) for name in OPTION_FIELDS
        }

    async def collect(self, context: Any, file: Any) -> UploadParameters:
        """
        Resolve every option concurrently into one parameter bundle.

        The first failing producer fails the collection with its own
        exception. Producers still running at that point are not cancelled;
        their results are discarded.

        Args:
            context: Host request context passed to every producer
            file: Uploaded file passed to every producer

        Returns:
            Frozen UploadParameters
        """
        values = await asyncio.gather(
            *(producer(context, file) for producer in self._producers.values())
        )
        return UploadParameters(**dict(zip(self._producers, values)))

    async def store(self, context: Any, file: Any) -> StoredFile:
        """
        Upload a file and return its stored record.

        Options are fully resolved before the write starts. The file's
        stream is read once and never buffered as a whole.

        Args:
            context: Host request context
            file: Uploaded file exposing ``stream``

        Returns:
            StoredFile for the written object

        Raises:
            Exception: The original error of the failing option producer or
                of the storage client (UploadError)
        """
        log = logger.bind(originalname=getattr(file, "originalname", None))

        try:
            opts = await self.collect(context, file)
        except Exception as e:
            log.warning("option_collection_failed", error=str(e))
            raise

        log = log.bind(bucket=opts.bucket, key=opts.key)
        log.info("upload_started", content_type=opts.content_type)

        params = {
            "ACL": opts.acl,
            "Body": file.stream,
            "Bucket": opts.bucket,
            "CacheControl": opts.cache_control,
            "ContentDisposition": opts.content_disposition,
            "ContentEncoding": opts.content_encoding,
            "ContentType": opts.content_type,
            "Key": opts.key,
            "Metadata": opts.metadata,
            "ServerSideEncryption": opts.server_side_encryption,
            "SSEKMSKeyId": opts.sse_kms_key_id,
            "StorageClass": opts.storage_class,
            "Tagging": opts.tagging,
        }

        try:
            upload = self.s3.create_upload(params, part_size=opts.part_size)

            current_size = 0

            def track_progress(event: ProgressEvent) -> None:
                nonlocal current_size
                if event.total:
                    current_size = event.total

            upload.on_progress(track_progress)
            result = await upload.done()
        except Exception as e:
            log.error("upload_failed", error=str(e))
            raise

        log.info("upload_completed", size=current_size, etag=result.get("ETag"))

        return StoredFile(
            fieldname=getattr(file, "fieldname", None),
            originalname=getattr(file, "originalname", None),
            encoding=getattr(file, "encoding", None),
            mimetype=getattr(file, "mimetype", None),
            acl=opts.acl,
            bucket=opts.bucket,
            etag=result.get("ETag"),
            key=opts.key,
            content_disposition=opts.content_disposition,
            content_encoding=opts.content_encoding,
            content_type=opts.content_type,
            location=result.get("Location"),
            metadata=opts.metadata,
            server_side_encryption=opts.server_side_encryption,
            size=current_size,
            storage_class=opts.storage_class,
            tagging=opts.tagging,
            version_id=result.get("VersionId"),
        )

    async def handle_file(
        self,
        context: Any,
        file: Any,
        callback: Callable[..., None],
    ) -> None:
        """
        Upload a file and report the outcome through ``callback``.

        Calls ``callback(None, stored_file)`` on success or
        ``callback(error)`` on failure, exactly once.
        """
        try:
            stored = await self.store(context, file)
        except Exception as e:
            callback(e)
            return
        callback(None, stored)

    async def remove(self, context: Any, file: Any) -> None:
        """
        Delete a stored object.

        Waits for the backend to answer the delete request; does not check
        that the object is gone afterwards.

        Args:
            context: Host request context
            file: Stored file (or mapping) carrying ``bucket`` and ``key``

        Raises:
            DeleteError: If the delete request fails
        """
        bucket = _field(file, "bucket")
        key = _field(file, "key")
        await self.s3.delete_object_async(bucket, key)

    async def remove_file(
        self,
        context: Any,
        file: Any,
        callback: Callable[..., None],
    ) -> None:
        """Delete a stored object; ``callback(None)`` on success, ``callback(error)`` otherwise."""
        try:
            await self.remove(context, file)
        except Exception as e:
            callback(e)
            return
        callback(None)


def _field(file: Any, name: str) -> Optional[str]:
    if isinstance(file, dict):
        return file.get(name)
    return getattr(file, name, None)


def s3_storage(**options: Any) -> S3Storage:
    """
    Build an S3Storage from keyword options.

    Accepts snake_case names as well as camelCase aliases such as
    ``contentType`` or ``partSize``.
    """
    normalized = {OPTION_ALIASES.get(name, name): value for name, value in options.items()}
    return S3Storage(**normalized)
