"""
FastAPI routes for storing and removing uploaded files.

This module provides a router factory exposing:
- POST   /            multipart upload streamed to S3
- DELETE /{bucket}/{key}  removal of a stored object
"""
import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, FastAPI, File, Request, UploadFile, status as http_status
from fastapi.responses import JSONResponse, Response

from s3_storage.core.exceptions import AppException, MissingFileError, app_exception_handler
from s3_storage.core.logging import bind_upload_context, unbind_upload_context
from s3_storage.integrations.storage_exceptions import StorageError
from s3_storage.schemas.file import UploadedFile
from s3_storage.schemas.storage import StoredFile
from s3_storage.services.s3_storage import S3Storage

logger = structlog.get_logger(__name__)


def create_upload_router(storage: S3Storage, field_name: str = "file", prefix: str = "/files") -> APIRouter:
    """
    Build a router bound to one storage engine.

    Args:
        storage: Engine used for every request
        field_name: Multipart form field carrying the file
        prefix: Router prefix

    Returns:
        APIRouter with upload and delete endpoints
    """
    router = APIRouter(prefix=prefix, tags=["Files"])

    @router.post(
        "",
        response_model=StoredFile,
        status_code=http_status.HTTP_201_CREATED,
        summary="Upload file",
        description="Stream a multipart file upload to object storage.",
    )
    async def upload_file(
        request: Request,
        file: Optional[UploadFile] = File(None, alias=field_name, description="File to store"),
    ) -> StoredFile:
        """Store one uploaded file and return its stored record."""
        if file is None:
            raise MissingFileError(field_name)

        upload_id = str(uuid.uuid4())
        bind_upload_context(upload_id=upload_id)
        log = logger.bind(filename=file.filename, content_type=file.content_type)
        log.info("api_upload_file")

        try:
            return await storage.store(request, UploadedFile.from_upload_file(file, fieldname=field_name))
        finally:
            unbind_upload_context("upload_id")

    @router.delete(
        "/{bucket}/{key:path}",
        status_code=http_status.HTTP_204_NO_CONTENT,
        summary="Remove file",
        description="Delete a stored object by bucket and key.",
    )
    async def remove_file(request: Request, bucket: str, key: str) -> Response:
        """Remove a stored object."""
        logger.info("api_remove_file", bucket=bucket, key=key)
        await storage.remove(request, {"bucket": bucket, "key": key})
        return Response(status_code=http_status.HTTP_204_NO_CONTENT)

    return router


async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Handle object storage errors."""
    logger.error("storage_error", error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(
        status_code=http_status.HTTP_502_BAD_GATEWAY,
        content={"detail": exc.message, "code": exc.code, **exc.metadata},
    )


def install_exception_handlers(app: FastAPI) -> None:
    """Register the storage and application exception handlers on an app."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StorageError, storage_exception_handler)
