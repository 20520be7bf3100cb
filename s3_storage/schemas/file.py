"""
The uploaded file as seen by the storage engine.
"""
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import UploadFile

from s3_storage.core.config import settings
from s3_storage.integrations.storage_utils import iter_stream_chunks


@dataclass
class UploadedFile:
    """
    An in-flight upload handed over by the host.

    ``stream`` is consumed exactly once by the upload. Option producers may
    replace it (the content-type sniffer does) before the write begins.
    """

    stream: Any
    fieldname: Optional[str] = None
    originalname: Optional[str] = None
    encoding: Optional[str] = None
    mimetype: Optional[str] = None

    @classmethod
    def from_upload_file(cls, upload: UploadFile, fieldname: str = "file") -> "UploadedFile":
        """
        Wrap a FastAPI UploadFile.

        Args:
            upload: File received by a FastAPI endpoint
            fieldname: Form field the file came from

        Returns:
            UploadedFile streaming the upload in ``stream_chunk_size`` chunks
        """
        return cls(
            stream=iter_stream_chunks(upload, settings.stream_chunk_size),
            fieldname=fieldname,
            originalname=upload.filename,
            encoding=upload.headers.get("content-transfer-encoding", "7bit") if upload.headers else "7bit",
            mimetype=upload.content_type,
        )
