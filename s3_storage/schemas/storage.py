"""
Pydantic schemas for upload parameters and stored file records.

UploadParameters is the resolved per-upload bundle; StoredFile is the
record handed back to the host once the backend acknowledged the write.
"""
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadParameters(BaseModel):
    """Fully resolved parameters for one upload. Immutable once collected."""

    model_config = ConfigDict(frozen=True)

    acl: Optional[str] = Field(default=None, description="Canned ACL, e.g. 'private'")
    bucket: str = Field(..., min_length=1, description="Target bucket")
    cache_control: Optional[str] = None
    content_disposition: Optional[str] = None
    content_encoding: Optional[str] = None
    content_type: Optional[str] = None
    key: str = Field(..., min_length=1, description="Object key")
    metadata: Optional[Dict[str, str]] = Field(default=None, description="User metadata (x-amz-meta-*)")
    part_size: Optional[int] = Field(default=None, gt=0, description="Multipart chunk size in bytes")
    server_side_encryption: Optional[str] = Field(default=None, description="e.g. 'AES256' or 'aws:kms'")
    sse_kms_key_id: Optional[str] = None
    storage_class: Optional[str] = Field(default=None, description="e.g. 'STANDARD'")
    tagging: Optional[str] = Field(default=None, description="URL-encoded tag set, e.g. 'a=1&b=2'")


class StoredFile(BaseModel):
    """Schema for a file stored by the upload engine."""

    fieldname: Optional[str] = None
    originalname: Optional[str] = None
    encoding: Optional[str] = None
    mimetype: Optional[str] = None

    acl: Optional[str] = None
    bucket: str
    etag: Optional[str] = Field(default=None, description="Checksum assigned by the backend")
    key: str
    content_disposition: Optional[str] = None
    content_encoding: Optional[str] = None
    content_type: Optional[str] = None
    location: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None
    server_side_encryption: Optional[str] = None
    size: int = Field(
        default=0,
        description="Bytes transferred as reported by upload progress; 0 when no progress total was reported"
    )
    storage_class: Optional[str] = None
    tagging: Optional[str] = None
    version_id: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "fieldname": "file",
                "originalname": "report.pdf",
                "mimetype": "application/pdf",
                "acl": "private",
                "bucket": "uploads",
                "etag": "\"9a0364b9e99bb480dd25e1f0284c8555\"",
                "key": "3f2a9c5e8d7b41a6b0c9e1f2a3b4c5d6",
                "content_type": "application/pdf",
                "location": "https://s3.us-east-1.amazonaws.com/uploads/3f2a9c5e8d7b41a6b0c9e1f2a3b4c5d6",
                "size": 10240,
                "storage_class": "STANDARD",
            }
        }
    )
