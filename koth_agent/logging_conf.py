"""Logging configuration for the agent and the poller.

Sets up a JSON-line logger on stdout so the agent's output can be shipped as-is
by whatever supervises the box. setup_logging() is idempotent.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging import Handler, LogRecord
from typing import Any

_DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Attributes every LogRecord carries; anything else came in through `extra`.
_RESERVED = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "color_message",
    }
)


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Carries ts, level, logger and message, plus any structured fields passed
    via `logger.info("msg", extra={...})`.
    """

    def format(self, record: LogRecord) -> str:  # type: ignore[override]
        payload: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key in _RESERVED or key in payload:
                continue
            payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def _make_stream_handler(level: int) -> Handler:
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    return handler


def _normalize_level(level: str | int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def setup_logging(level: str | int = _DEFAULT_LEVEL) -> None:
    """Configure root and uvicorn loggers for JSON output.

    Only attaches a handler if the root logger has none yet.
    """
    root = logging.getLogger()
    level = _normalize_level(level)

    if root.handlers:  # already configured (reload, tests, embedding app)
        return

    root.setLevel(level)
    root.addHandler(_make_stream_handler(level))

    # Uvicorn installs its own handlers unless told otherwise; route them to root.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.propagate = True
        for h in list(lg.handlers):
            lg.removeHandler(h)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger.

    Usage: logger = get_logger("agent.api")
    """
    return logging.getLogger(name if name else __name__)
