# Schemas package

from s3_storage.schemas.file import UploadedFile
from s3_storage.schemas.storage import StoredFile, UploadParameters

__all__ = [
    "StoredFile",
    "UploadParameters",
    "UploadedFile",
]
