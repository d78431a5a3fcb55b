"""Logging utilities.

Exports:
- setup_logging: configure the package logger from ``LoggingConfig``
- StructuredFormatter: JSON-lines formatter
- SensitiveDataFilter: redacts prompt and output text from log records
"""

from context_steward.observability.logging import (
    PACKAGE_LOGGER,
    SensitiveDataFilter,
    StructuredFormatter,
    setup_logging,
)

__all__ = [
    "PACKAGE_LOGGER",
    "SensitiveDataFilter",
    "StructuredFormatter",
    "setup_logging",
]
