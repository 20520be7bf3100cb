"""
Custom exceptions for object storage operations.
"""
from typing import Any, Dict, Optional


class StorageError(Exception):
    """Base exception for storage errors."""

    code = "storage_error"

    def __init__(
        self,
        message: str,
        original_exception: Optional[BaseException] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception
        self.metadata = metadata or {}

    def __str__(self) -> str:
        base = self.message
        if self.metadata:
            base += f" | Metadata: {self.metadata}"
        if self.original_exception:
            base += f" | Original: {str(self.original_exception)}"
        return base


class StorageConnectionError(StorageError):
    """Raised when the storage client cannot be created or reached."""

    code = "storage_unreachable"

    def __init__(
        self,
        endpoint: Optional[str],
        original_exception: Optional[BaseException] = None,
    ):
        message = f"Cannot connect to storage endpoint '{endpoint or 'default'}'"
        super().__init__(message, original_exception, {"endpoint": endpoint})


class BucketAccessError(StorageError):
    """Raised when a bucket cannot be accessed."""

    code = "bucket_inaccessible"

    def __init__(
        self,
        bucket: str,
        original_exception: Optional[BaseException] = None,
    ):
        message = f"Failed to access bucket '{bucket}'"
        super().__init__(message, original_exception, {"bucket": bucket})


class UploadError(StorageError):
    """Raised on upload failures."""

    code = "upload_failed"

    def __init__(
        self,
        bucket: str,
        key: str,
        original_exception: Optional[BaseException] = None,
        size: Optional[int] = None,
    ):
        message = f"Failed to upload file to bucket '{bucket}' with key '{key}'"
        metadata: Dict[str, Any] = {"bucket": bucket, "key": key}
        if size is not None:
            metadata["size"] = size
        super().__init__(message, original_exception, metadata)


class DeleteError(StorageError):
    """Raised on delete failures."""

    code = "delete_failed"

    def __init__(
        self,
        bucket: str,
        key: str,
        original_exception: Optional[BaseException] = None,
    ):
        message = f"Failed to delete file from bucket '{bucket}' with key '{key}'"
        metadata = {"bucket": bucket, "key": key}
        super().__init__(message, original_exception, metadata)
