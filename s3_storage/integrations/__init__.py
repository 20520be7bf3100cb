"""
Integrations package for external services.

This package contains the S3-compatible object storage client.
"""

from s3_storage.integrations.object_storage_client import (
    ObjectStorageClient,
    ProgressEvent,
    StorageConfig,
    StreamingUpload,
)

__all__ = [
    "ObjectStorageClient",
    "ProgressEvent",
    "StorageConfig",
    "StreamingUpload",
]
