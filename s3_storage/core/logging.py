"""
structlog setup for the upload engine.

Log events are snake_case (``upload_started``, ``stream_upload_failed``).
Upload context (upload_id, bucket, key) travels in contextvars so that
concurrent uploads on one event loop keep their own values.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from s3_storage.core.config import get_settings

UPLOAD_CONTEXT_KEYS = ("upload_id", "bucket", "key")


def add_upload_id(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Render upload_id as a string (it is often bound as a UUID)."""
    upload_id = event_dict.get("upload_id")
    if upload_id:
        event_dict["upload_id"] = str(upload_id)
    return event_dict


def add_object_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Render bucket and key as plain strings when present."""
    for name in ("bucket", "key"):
        value = event_dict.get(name)
        if value is not None:
            event_dict[name] = str(value)
    return event_dict


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Configure structlog on top of stdlib logging.

    Args:
        level: Log level name; LOG_LEVEL when omitted
        fmt: "json" or "text"; LOG_FORMAT when omitted
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    renderer_name = (fmt or settings.log_format).lower()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
        force=True,
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        add_upload_id,
        add_object_context,
    ]
    if renderer_name == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)


def bind_upload_context(**kwargs: Any) -> None:
    """
    Bind upload context for every log line of the current task.

    Example:
        bind_upload_context(upload_id="5f0c...", bucket="media")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_upload_context(*keys: str) -> None:
    """Drop keys from the upload context; all upload keys when none are given."""
    structlog.contextvars.unbind_contextvars(*(keys or UPLOAD_CONTEXT_KEYS))


def clear_upload_context() -> None:
    structlog.contextvars.clear_contextvars()
