"""
Custom exception classes for the HTTP host adapter and option resolution.
"""
from typing import Dict, Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, str]] = None
    ):
        self.status_code = status_code
        self.detail = detail
        self.headers = headers
        super().__init__(detail)


class OptionResolutionError(AppException):
    """A callback-style option reported an error that is not an exception."""

    def __init__(self, detail: str = "Option could not be resolved"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


class UploadRejectedError(AppException):
    """Raised by option producers to refuse a file (e.g. disallowed type)."""

    def __init__(self, detail: str = "Upload rejected"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


class MissingFileError(AppException):
    """The multipart request carried no file under the expected field."""

    def __init__(self, field_name: str = "file"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"No file uploaded in field '{field_name}'"
        )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Global exception handler for AppException instances.

    Args:
        request: FastAPI request object
        exc: AppException instance

    Returns:
        JSONResponse with error details
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=exc.headers
    )
