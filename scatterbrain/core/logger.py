"""Structured JSON logging for the Scatterbrain content engine.

Every log line is a single JSON object carrying a timestamp, level and message,
plus any context passed through ``extra`` (for example ``user_id`` or the
pipeline stage) so a single request can be traced across components.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Attributes present on every LogRecord; anything else came from `extra`.
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JSONFormatter(logging.Formatter):
    """Render each record as a single-line JSON document.

    Output format:
        {
            "ts": "2026-03-02T09:12:44.201733+00:00",
            "level": "INFO",
            "msg": "Stage research completed in 812ms",
            "logger": "scatterbrain.pipeline.agents",
            "user_id": "u-42",
            ...extra fields...
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="microseconds"),
            "level": record.levelname,
            "msg": record.getMessage(),
        }

        if record.name and record.name != "root":
            entry["logger"] = record.name

        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        )

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class RequestLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that stamps request context onto every record.

    Usage:
        log = RequestLoggerAdapter(logging.getLogger(__name__), user_id="u-42")
        log.info("Analysis started")  # carries user_id automatically
    """

    def __init__(self, logger: logging.Logger, user_id: str, **context: Any):
        super().__init__(logger, {"user_id": user_id, **context})

    def process(
        self, msg: str, kwargs: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        # Explicit extras on the call win over the adapter's context.
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def setup_logging(level: str = "INFO", stream: Any = None) -> None:
    """Install a single JSON handler on the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        stream: Output stream, stderr when omitted.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper()))


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name)


def get_request_logger(name: str, user_id: str, **context: Any) -> RequestLoggerAdapter:
    """Return a logger that tags every message with the requesting user.

    Example:
        log = get_request_logger(__name__, user_id)
        log.info("Saved thought %s", thought_id)
        # {"ts": "...", "level": "INFO", "msg": "Saved thought t-1", "user_id": "u-42"}
    """
    return RequestLoggerAdapter(get_logger(name), user_id, **context)


def reset_logging() -> None:
    """Drop all root handlers (used by tests)."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
