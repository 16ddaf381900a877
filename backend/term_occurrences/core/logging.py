"""Logging utilities for Term Occurrences.

Records carry occurrence and source identifiers as ``ctx_*`` extras, built
with :func:`log_context`. The JSON formatter lifts them into the payload;
the plain formatter appends them as ``key=value`` pairs.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import orjson

_DEFAULT_LEVEL = os.environ.get("TOCC_LOG_LEVEL", "INFO")
_CONTEXT_PREFIX = "ctx_"
_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def log_context(**fields: Any) -> dict[str, Any]:
    """Build ``extra`` for a log call, e.g. ``log_context(source=doc_id)``; ``None`` values are dropped."""
    return {f"{_CONTEXT_PREFIX}{key}": value for key, value in fields.items() if value is not None}


def _context_of(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key[len(_CONTEXT_PREFIX) :]: value
        for key, value in record.__dict__.items()
        if key.startswith(_CONTEXT_PREFIX)
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = _context_of(record)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return orjson.dumps(payload, default=str).decode("utf-8")


class ContextFormatter(logging.Formatter):
    """Plain-text formatter that appends the record's context fields."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context_of(record)
        if not context:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        head, sep, tail = line.partition("\n")
        return f"{head} [{pairs}]{sep}{tail}"


def configure_logging(level: str | int = _DEFAULT_LEVEL, use_json: bool = True) -> None:
    """Configure the root logger; output goes to stderr so CLI results stay parseable."""
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if use_json else ContextFormatter(_PLAIN_FORMAT))
    root.handlers = [handler]


def get_logger(name: str = "term_occurrences") -> logging.Logger:
    """Return configured logger, configuring root on first call."""
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "ContextFormatter", "log_context", "configure_logging", "get_logger"]
