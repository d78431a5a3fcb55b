"""Custom exception hierarchy for context-steward."""

from __future__ import annotations

from typing import Any, ClassVar


class StewardError(Exception):
    """Base exception for all context-steward errors.

    All custom exceptions in this package inherit from this class,
    allowing hosts to catch everything raised by the engine at once.

    Attributes:
        message: Human-readable error message.
        cause: Original exception that caused this error.
        details: Additional error context as key-value pairs.

    Details can be accessed as attributes (e.g., error.config_path).
    """

    # Map attribute names to default values when not in details
    _defaults: ClassVar[dict[str, Any]] = {}

    def __init__(
        self,
        message: str,
        *,
        cause: Exception | None = None,
        **details: Any,
    ) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
            cause: Original exception that caused this error.
            **details: Additional error context.
        """
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details

    def __getattr__(self, name: str) -> Any:
        """Access details as attributes."""
        if name in self.details:
            return self.details[name]
        if name in self._defaults:
            return self._defaults[name]
        raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'")

    def __str__(self) -> str:
        """Return string representation."""
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


class ConfigurationError(StewardError):
    """Error in steward configuration.

    Raised when the manifest is malformed or fails validation.

    Attributes from details: config_path, file_name.
    """


class ConfigNotFoundError(ConfigurationError):
    """No configuration could be found.

    The only condition that is allowed to propagate into the host's
    turn loop: without a manifest there is nothing to inject.

    Attributes from details: config_path, start_dir.
    """


class PersistenceError(StewardError):
    """Session or rollup state could not be written.

    Attributes from details: path, session_id, recoverable (default: True).
    """

    _defaults: ClassVar[dict[str, Any]] = {"recoverable": True}
