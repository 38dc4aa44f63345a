"""Application error types with structured codes and user-facing suggestions.

Backend failures live in :mod:`figforge.providers.base`; the errors here cover
everything that happens around the generation core (input, configuration,
path safety, persistence).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


class FigForgeError(Exception):
    """Base class for application errors.

    Subclasses set ``code`` and either pass an explicit suggestion or
    override :meth:`_default_suggestion` to infer one from the message.

    Attributes:
        code: Stable machine-readable error code.
        suggestion: Actionable hint for the caller.
        timestamp: ISO-8601 creation time.
    """

    code = "FIGFORGE_ERROR"

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self._suggestion = suggestion
        self.timestamp = datetime.now(UTC).isoformat()

    @property
    def suggestion(self) -> str:
        """Explicit suggestion, or one inferred from the message."""
        return self._suggestion or self._default_suggestion()

    def _default_suggestion(self) -> str:
        return "Please try again or contact support if the problem persists"

    def to_structured(self) -> dict[str, Any]:
        """Format as the ``error`` object of a tool error response."""
        return {
            "code": self.code,
            "message": self.message,
            "suggestion": self.suggestion,
            "timestamp": self.timestamp,
        }


class InputValidationError(FigForgeError):
    """Raised when tool arguments fail validation."""

    code = "INPUT_VALIDATION_ERROR"


class ConfigError(FigForgeError):
    """Raised when settings are missing or invalid."""

    code = "CONFIG_ERROR"


class SecurityError(FigForgeError):
    """Raised when a file path or name violates the path policy."""

    code = "SECURITY_ERROR"

    def _default_suggestion(self) -> str:
        message = self.message.lower()
        if "null byte" in message:
            return "Ensure your request meets security requirements"
        if "path" in message or "traversal" in message or ".." in message:
            return "Use valid file paths within allowed directories only"
        if "extension" in message or "format" in message:
            return "Use supported file extensions: .png, .jpg, .jpeg, .webp"
        return "Ensure your request meets security requirements"


class FileOperationError(FigForgeError):
    """Raised when reading or writing an image file fails."""

    code = "FILE_OPERATION_ERROR"

    def _default_suggestion(self) -> str:
        message = self.message.lower()
        if "permission" in message or "access denied" in message:
            return "Check file and directory permissions for the output path"
        if "space" in message or "disk full" in message:
            return "Free up disk space or choose a different output directory"
        if "no such file" in message or "not found" in message:
            return "Ensure the output directory exists and is accessible"
        if "read-only" in message or "readonly" in message:
            return "Choose a writable directory for file output"
        return "Check file system permissions and available disk space"
