"""Base protocol and failure types for backend providers.

Every backend failure is classified exactly once, where the backend call
returns, into one :class:`FailureKind`. Downstream code branches on the
exception type (or ``kind``), never on message text.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable


class FailureKind(StrEnum):
    """Closed classification of backend failures."""

    NETWORK = "network"
    BACKEND_REJECTED = "backend_rejected"
    CONTENT_BLOCKED = "content_blocked"
    EMPTY_RESULT = "empty_result"
    QA_INFRASTRUCTURE = "qa_infrastructure"


# Error codes surfaced in tool error responses
_KIND_TO_CODE: dict[FailureKind, str] = {
    FailureKind.NETWORK: "NETWORK_ERROR",
    FailureKind.BACKEND_REJECTED: "GEMINI_API_ERROR",
    FailureKind.CONTENT_BLOCKED: "GEMINI_API_ERROR",
    FailureKind.EMPTY_RESULT: "GEMINI_API_ERROR",
    FailureKind.QA_INFRASTRUCTURE: "GEMINI_API_ERROR",
}

_DEFAULT_SUGGESTIONS: dict[FailureKind, str] = {
    FailureKind.NETWORK: "Check your internet connection and try again",
    FailureKind.BACKEND_REJECTED: "Check your API configuration and try again",
    FailureKind.CONTENT_BLOCKED: "Rephrase your prompt to avoid potentially sensitive content",
    FailureKind.EMPTY_RESULT: "The generation was incomplete. Please try again",
    FailureKind.QA_INFRASTRUCTURE: "QA evaluation is advisory; the image was still delivered",
}


class ProviderError(Exception):
    """Base exception for backend provider errors.

    Attributes:
        provider: Provider name (``gemini``, ``google``, ...).
        kind: Failure classification.
        suggestion: Actionable hint for the caller.
        details: Extra diagnostic context (finish reason, status code, ...).
    """

    kind: FailureKind = FailureKind.BACKEND_REJECTED

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.provider = provider
        self.message = message
        self.suggestion = suggestion or _DEFAULT_SUGGESTIONS[self.kind]
        self.details = details or {}
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(f"[{provider}] {message}")

    @property
    def code(self) -> str:
        """Error code derived from the failure kind."""
        return _KIND_TO_CODE[self.kind]

    def to_structured(self) -> dict[str, Any]:
        """Format as the ``error`` object of a tool error response."""
        return {
            "code": self.code,
            "message": str(self),
            "suggestion": self.suggestion,
            "timestamp": self.timestamp,
        }


class ProviderConnectionError(ProviderError):
    """Raised when the backend is unreachable or the call timed out."""

    kind = FailureKind.NETWORK


class ProviderRejectedError(ProviderError):
    """Raised when the backend refuses the request (quota, auth, malformed)."""

    kind = FailureKind.BACKEND_REJECTED


class ContentBlockedError(ProviderError):
    """Raised when a safety or policy filter blocks generation."""

    kind = FailureKind.CONTENT_BLOCKED


class EmptyResultError(ProviderError):
    """Raised when the backend answers without a usable artifact."""

    kind = FailureKind.EMPTY_RESULT


class QaInfrastructureError(ProviderError):
    """Raised when the QA evaluation backend cannot produce a verdict."""

    kind = FailureKind.QA_INFRASTRUCTURE


@runtime_checkable
class TextProvider(Protocol):
    """Protocol for text (optionally multimodal) completion backends.

    Used for prompt enrichment and QA evaluation.
    """

    async def complete(
        self,
        instruction: str,
        *,
        temperature: float,
        max_tokens: int,
        system_instruction: str | None = None,
        input_image: tuple[bytes, str] | None = None,
    ) -> str:
        """Generate text for a single instruction.

        Args:
            instruction: User-turn text.
            temperature: Sampling temperature.
            max_tokens: Output token ceiling.
            system_instruction: Optional system prompt.
            input_image: Optional ``(data, mime_type)`` image attached to the turn.

        Returns:
            The generated text, stripped.

        Raises:
            ProviderError: If the completion fails.
        """
        ...
