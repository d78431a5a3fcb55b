"""Error hierarchy."""

from context_steward.errors.exceptions import (
    ConfigNotFoundError,
    ConfigurationError,
    PersistenceError,
    StewardError,
)

__all__ = [
    "ConfigNotFoundError",
    "ConfigurationError",
    "PersistenceError",
    "StewardError",
]
