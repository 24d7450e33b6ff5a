"""Structured JSON logging with request correlation."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import sys
from typing import Any

import orjson

from local_instantsearch.observability.context import get_search_context


_RECORD_ATTRIBUTES = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}

_PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per record, stamped with the batch request_id and index."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **get_search_context(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        # Fields passed through ``extra=``
        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES and key not in entry
        )
        return orjson.dumps(entry, default=str).decode("utf-8")


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    *,
    logger_levels: dict[str, str] | None = None,
    access_log: bool = False,
) -> None:
    """Route all logging to stdout, as JSON or plain text.

    Args:
        level: Root log level name (case-insensitive)
        json_output: Use :class:`JsonFormatter` instead of the plain line format
        logger_levels: Per-logger level overrides (logger name -> level name)
        access_log: Keep uvicorn access lines at the root level instead of WARNING
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(_PLAIN_FORMAT))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())

    quiet = ["httpx", "httpcore"]
    if not access_log:
        quiet.append("uvicorn.access")
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    for name, logger_level in (logger_levels or {}).items():
        logging.getLogger(name).setLevel(logger_level.upper())
