"""
Content-type detection for upload streams.

The sniffer reads the first chunk of a file's stream, classifies it by
byte signature and hands back a replacement stream that replays that
chunk followed by the untouched remainder of the source. Only the first
chunk is ever held in memory.
"""

import asyncio
import re
from typing import Any, AsyncIterator, Callable, Set, Tuple

import filetype

from s3_storage.core.config import settings
from s3_storage.core.logging import get_logger
from s3_storage.integrations.storage_utils import iter_stream_chunks

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPE_VALUE = "application/octet-stream"
SVG_CONTENT_TYPE = "image/svg+xml"

# SVG is generic XML by signature. The first chunk may not hold the whole
# document, so only the opening tag is checked.
SVG_PATTERN = re.compile(r"^\s*(?:<\?xml[^>]*>\s*)?(?:<!doctype svg[^>]*>\s*)?<svg[^>]*>", re.IGNORECASE)
DTD_ENTITY_PATTERN = re.compile(r"\s*<!Entity\s+\S*\s*(?:\"|')[^\"]+(?:\"|')\s*>", re.IGNORECASE | re.MULTILINE)
DTD_MARKUP_PATTERN = re.compile(r"\[?(?:\s*<![A-Z]+[^>]*>\s*)*\]?")
HTML_COMMENT_PATTERN = re.compile(r"<!--[\s\S]*?-->")

# Background sniff tasks, referenced until they finish
_pending_sniffs: Set[asyncio.Task] = set()


class Xml(filetype.Type):
    """XML documents starting with an XML declaration."""

    MIME = "application/xml"
    EXTENSION = "xml"
    PROLOGS = (
        b"<?xml ",
        b"\xef\xbb\xbf<?xml ",
        b"\xfe\xff\x00<\x00?\x00x\x00m\x00l",
        b"\xff\xfe<\x00?\x00x\x00m\x00l\x00",
    )

    def __init__(self):
        super().__init__(mime=Xml.MIME, extension=Xml.EXTENSION)

    def match(self, buf):
        return any(bytes(buf[:len(prolog)]) == prolog for prolog in self.PROLOGS)


filetype.add_type(Xml())


def is_svg(text: str) -> bool:
    """
    Check whether a document prefix opens an SVG document.

    DTD entity declarations, DTD markup declarations and comments are
    removed first so they cannot hide the opening ``<svg>`` tag.
    """
    text = DTD_ENTITY_PATTERN.sub("", text)
    text = DTD_MARKUP_PATTERN.sub("", text)
    text = HTML_COMMENT_PATTERN.sub("", text)
    return SVG_PATTERN.match(text) is not None


def classify_chunk(chunk: bytes) -> str:
    """
    Classify a leading chunk by byte signature.

    Args:
        chunk: First bytes of a file

    Returns:
        MIME type; ``application/octet-stream`` when no signature matches
    """
    kind = filetype.guess(chunk) if chunk else None
    if kind is None:
        return DEFAULT_CONTENT_TYPE_VALUE
    if kind.extension == Xml.EXTENSION and is_svg(chunk.decode("utf-8", errors="replace")):
        return SVG_CONTENT_TYPE
    return kind.mime


async def splice_stream(first_chunk: bytes, rest: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Replay ``first_chunk`` then forward everything left in ``rest``."""
    if first_chunk:
        yield first_chunk
    async for chunk in rest:
        yield chunk


async def detect_content_type(file: Any) -> Tuple[str, AsyncIterator[bytes]]:
    """
    Sniff the content type of a file's stream.

    Args:
        file: Uploaded file whose ``stream`` has not been consumed yet

    Returns:
        Tuple of (mime type, replacement stream yielding the original bytes)
    """
    source = iter_stream_chunks(file.stream, settings.stream_chunk_size)
    first_chunk = await anext(source, b"")

    mime = classify_chunk(first_chunk)
    logger.debug(
        "content_type_detected",
        mime=mime,
        originalname=getattr(file, "originalname", None),
        peeked_bytes=len(first_chunk),
    )
    return mime, splice_stream(first_chunk, source)


def auto_content_type(context: Any, file: Any, callback: Callable[..., None]) -> None:
    """
    Callback-style content-type option.

    Calls ``callback(None, mime, replacement_stream)`` once the first chunk
    arrived, or ``callback(error)`` if reading the stream failed. The
    replacement stream becomes the file's stream for the upload.
    """

    async def sniff() -> None:
        try:
            mime, replacement = await detect_content_type(file)
        except Exception as e:
            logger.error("content_type_detection_failed", error=str(e))
            callback(e)
            return
        callback(None, mime, replacement)

    task = asyncio.ensure_future(sniff())
    _pending_sniffs.add(task)
    task.add_done_callback(_pending_sniffs.discard)


def static_value(value: Any) -> Callable[[Any, Any, Callable[..., None]], None]:
    """Build a callback-style option that always yields ``value``."""

    def option(context: Any, file: Any, callback: Callable[..., None]) -> None:
        callback(None, value)

    return option


default_content_type = static_value(DEFAULT_CONTENT_TYPE_VALUE)

AUTO_CONTENT_TYPE = auto_content_type
DEFAULT_CONTENT_TYPE = default_content_type
