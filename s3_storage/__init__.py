"""
s3-stream-storage

Streams uploaded files to S3-compatible object storage with per-upload
options given as static values, awaitable producers or callback producers.
"""

from s3_storage.schemas.file import UploadedFile
from s3_storage.schemas.storage import StoredFile, UploadParameters
from s3_storage.services.content_type import (
    AUTO_CONTENT_TYPE,
    DEFAULT_CONTENT_TYPE,
    auto_content_type,
    default_content_type,
    detect_content_type,
    is_svg,
    static_value,
)
from s3_storage.services.options import (
    AwaitableOption,
    CallbackOption,
    StaticOption,
    resolve_option,
)
from s3_storage.services.s3_storage import S3Storage, s3_storage

__all__ = [
    "AUTO_CONTENT_TYPE",
    "AwaitableOption",
    "CallbackOption",
    "DEFAULT_CONTENT_TYPE",
    "S3Storage",
    "StaticOption",
    "StoredFile",
    "UploadParameters",
    "UploadedFile",
    "auto_content_type",
    "default_content_type",
    "detect_content_type",
    "is_svg",
    "resolve_option",
    "s3_storage",
    "static_value",
]
