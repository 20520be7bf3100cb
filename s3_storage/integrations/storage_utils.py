"""
Object Storage Utility Functions

Helper functions for adapting upload bodies to async byte streams,
exposing them to blocking readers, and formatting storage values.
"""

import asyncio
import inspect
from typing import Any, AsyncIterator, Optional
from urllib.parse import quote

DEFAULT_CHUNK_SIZE = 64 * 1024


async def iter_stream_chunks(
    source: Any, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> AsyncIterator[bytes]:
    """
    Yield the chunks of an upload body as an async byte stream.

    Accepted sources:
        - bytes / bytearray / memoryview (a single chunk)
        - async iterables of bytes (async generators, spliced streams)
        - objects with an async ``read(size)`` (FastAPI ``UploadFile``)
        - objects with a sync ``read(size)`` (files, ``BytesIO``); reads run
          in a worker thread
        - sync iterables of bytes

    Args:
        source: Upload body
        chunk_size: Read size for file-like sources

    Yields:
        Non-empty byte chunks in source order

    Raises:
        TypeError: If the source is not a supported body type
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        if len(source):
            yield bytes(source)
        return

    if hasattr(source, "__aiter__"):
        async for chunk in source:
            if chunk:
                yield bytes(chunk)
        return

    read = getattr(source, "read", None)
    if read is not None:
        if inspect.iscoroutinefunction(read):
            while True:
                chunk = await read(chunk_size)
                if not chunk:
                    break
                yield chunk
        else:
            while True:
                chunk = await asyncio.to_thread(read, chunk_size)
                if not chunk:
                    break
                yield chunk
        return

    if hasattr(source, "__iter__"):
        for chunk in source:
            if chunk:
                yield bytes(chunk)
        return

    raise TypeError(f"Unsupported upload body type: {type(source).__name__}")


class AsyncStreamReader:
    """
    Blocking file-like view of an async byte stream.

    ``read`` must be called from a worker thread: every chunk is fetched on
    ``loop`` and the calling thread waits for it. boto3's managed transfer
    reads upload bodies this way. At most one ``read`` request plus one
    source chunk is buffered.
    """

    def __init__(self, stream: AsyncIterator[bytes], loop: asyncio.AbstractEventLoop):
        self._stream = stream
        self._loop = loop
        self._buffer = bytearray()
        self.bytes_read = 0
        self.eof = False

    @property
    def total(self) -> Optional[int]:
        """Body length once the source is exhausted, otherwise None."""
        if self.eof and not self._buffer:
            return self.bytes_read
        return None

    async def _next_chunk(self) -> bytes:
        return await anext(self._stream, b"")

    def read(self, size: Optional[int] = -1) -> bytes:
        unbounded = size is None or size < 0
        while not self.eof and (unbounded or len(self._buffer) < size):
            chunk = asyncio.run_coroutine_threadsafe(self._next_chunk(), self._loop).result()
            if chunk:
                self._buffer.extend(chunk)
            else:
                self.eof = True

        if unbounded:
            size = len(self._buffer)
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        self.bytes_read += len(data)
        return data


def build_object_location(endpoint_url: Optional[str], bucket: str, key: str) -> str:
    """
    Build a path-style object URL.

    Args:
        endpoint_url: Client endpoint URL (e.g. "https://s3.us-east-1.amazonaws.com")
        bucket: Bucket name
        key: Object key

    Returns:
        Object URL
    """
    base = (endpoint_url or "https://s3.amazonaws.com").rstrip("/")
    return f"{base}/{bucket}/{quote(key, safe='/~')}"


def format_storage_size(size_bytes: int) -> str:
    """
    Format byte size to human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 GB", "256 MB")
    """
    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    size = float(size_bytes)
    unit_index = 0

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    return f"{size:.2f} {units[unit_index]}"
