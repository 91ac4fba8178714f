"""Logging setup: JSON lines for log shippers or plain text for a terminal.

Lines written while a reset ping is in flight carry the window and the
ping session ID from :mod:`codex_ping.services.ping_context`.
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone

from codex_ping.services.ping_context import ping_context

# LogRecord's own attributes; anything else on a record came in via ``extra=``
_STANDARD_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys() | {"message", "taskName"}
)

_QUIET_LOGGERS = ("httpx", "httpcore", "mcp")


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


def _format_exception(record: logging.LogRecord) -> str | None:
    if record.exc_info and record.exc_info[0] is not None:
        return "".join(traceback.format_exception(*record.exc_info))
    return None


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with ping context and ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        entry: dict = {
            "timestamp": _timestamp(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
            **ping_context(),
        }
        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
        )

        exception = _format_exception(record)
        if exception:
            entry["exception"] = exception
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """``<ts> <LEVEL> [window sid] logger - message`` for terminals."""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        ts = _timestamp(record).strftime("%Y-%m-%d %H:%M:%S")

        context = ping_context()
        tags = [context.get("window", ""), context.get("session_id", "")[:12]]
        prefix = " ".join(tag for tag in tags if tag)
        prefix = f"[{prefix}] " if prefix else ""

        line = f"{ts} {record.levelname:<8} {prefix}{record.name} - {record.message}"
        exception = _format_exception(record)
        if exception:
            line += "\n" + exception
        return line


_FORMATTERS: dict[str, type[logging.Formatter]] = {
    "json": JSONFormatter,
    "text": TextFormatter,
}


def setup_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    """Route all logging to stderr in the chosen format. Call once at startup."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    formatter_cls = _FORMATTERS.get(log_format.lower(), TextFormatter)
    handler.setFormatter(formatter_cls())
    root.addHandler(handler)

    # Per-request chatter from the HTTP and MCP stacks
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
