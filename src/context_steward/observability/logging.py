"""Logging setup for the ``context_steward`` package logger."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from context_steward.config.schema import LoggingConfig

PACKAGE_LOGGER = "context_steward"
PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
REDACTED = "[REDACTED]"

# Record attributes that may carry user content.
SENSITIVE_FIELDS = frozenset({"prompt", "text", "output", "transcript"})

# Attributes present on every LogRecord; anything else came from ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class SensitiveDataFilter(logging.Filter):
    """Redact user content passed through ``extra`` fields."""

    def __init__(self, fields: frozenset[str] = SENSITIVE_FIELDS) -> None:
        super().__init__()
        self.fields = fields

    def filter(self, record: logging.LogRecord) -> bool:
        for name in self.fields:
            if name in record.__dict__:
                setattr(record, name, REDACTED)
        return True


class StructuredFormatter(logging.Formatter):
    """Format records as single-line JSON objects.

    ``extra`` fields are included as top-level keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Configure the package logger.

    Handlers installed by an earlier call are replaced, so calling this
    again after a configuration reload does not duplicate output.

    Args:
        config: Logging configuration; defaults when omitted.

    Returns:
        The configured ``context_steward`` logger.
    """
    config = config or LoggingConfig()
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(config.level)

    for existing in list(logger.handlers):
        if getattr(existing, "_steward_handler", False):
            logger.removeHandler(existing)
            existing.close()

    if config.file is not None:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(config.file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)

    if config.structured:
        handler.setFormatter(StructuredFormatter())
        handler.addFilter(SensitiveDataFilter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    handler._steward_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger
