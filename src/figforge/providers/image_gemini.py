"""Gemini image generation provider.

Calls ``gemini-3-pro-image-preview`` through the google-genai SDK's async
surface (``client.aio.models.generate_content``).

The response is inspected in a fixed order, and each way it can fail maps
to exactly one provider error:

* prompt feedback ``blockReason`` -> :class:`ContentBlockedError`
* no candidates -> :class:`EmptyResultError`
* finish reason ``IMAGE_SAFETY``/``SAFETY``/``PROHIBITED_CONTENT`` -> :class:`ContentBlockedError`
* finish reason ``MAX_TOKENS`` or no content parts -> :class:`EmptyResultError`
* no inline image part -> :class:`EmptyResultError` (text reply kept as reason)
"""

from __future__ import annotations

import asyncio
import os
from typing import TYPE_CHECKING, Any, NoReturn

import httpx

from figforge.observability.logging import get_logger
from figforge.providers.base import (
    ContentBlockedError,
    EmptyResultError,
    ProviderConnectionError,
    ProviderError,
    ProviderRejectedError,
)
from figforge.providers.image import GenerationRequest, ImageResult

if TYPE_CHECKING:
    from google.genai import Client

log = get_logger(__name__)

DEFAULT_IMAGE_MODEL = "gemini-3-pro-image-preview"

_PROVIDER = "gemini"

_PROMPT_BLOCK_REASONS = frozenset({"SAFETY", "OTHER", "PROHIBITED_CONTENT", "BLOCKLIST"})
_FINISH_BLOCK_REASONS = frozenset({"IMAGE_SAFETY", "SAFETY", "PROHIBITED_CONTENT"})


def _enum_name(value: Any) -> str | None:
    """Normalize a google-genai enum (or plain string) to its name."""
    if value is None:
        return None
    name = getattr(value, "name", None)
    if isinstance(name, str):
        return name
    return str(value)


def _describe_safety_ratings(candidate: Any) -> str | None:
    """Render safety ratings as ``Dangerous Content (BLOCKED), ...``."""
    ratings = getattr(candidate, "safety_ratings", None)
    if not ratings:
        return None
    rendered: list[str] = []
    for rating in ratings:
        category = _enum_name(getattr(rating, "category", None)) or "UNKNOWN"
        label = " ".join(
            word.capitalize() for word in category.replace("HARM_CATEGORY_", "").split("_")
        )
        blocked = "BLOCKED" if getattr(rating, "blocked", False) else "ALLOWED"
        rendered.append(f"{label} ({blocked})")
    return ", ".join(rendered)


class GeminiImageProvider:
    """Image generation via the Gemini ``generateContent`` API.

    Args:
        model: Model name.
        api_key: Gemini API key. Falls back to ``GEMINI_API_KEY`` env var.
        timeout: Per-call timeout in seconds.
        client: Pre-built ``google.genai.Client`` (tests inject fakes here).
    """

    def __init__(
        self,
        model: str = DEFAULT_IMAGE_MODEL,
        api_key: str | None = None,
        timeout: float = 60.0,
        client: Client | Any | None = None,
    ) -> None:
        self._model = model
        self._timeout = timeout
        if client is not None:
            self._client = client
            return

        api_key = api_key or os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise ProviderRejectedError(
                _PROVIDER,
                "API key required. Set GEMINI_API_KEY environment variable.",
                suggestion="Set GEMINI_API_KEY in your environment or .env file",
            )
        self._client = self._create_client(api_key)

    @property
    def model(self) -> str:
        """Model identifier used for generation."""
        return self._model

    def _create_client(self, api_key: str) -> Client:
        from google import genai

        return genai.Client(api_key=api_key)

    def _build_contents(self, request: GenerationRequest) -> list[Any]:
        from google.genai import types

        parts: list[Any] = []
        # Edits send the image first, then the instruction
        if request.source_image is not None:
            parts.append(
                types.Part.from_bytes(
                    data=request.source_image.data,
                    mime_type=request.source_image.mime_type,
                )
            )
        parts.append(types.Part.from_text(text=request.prompt))
        return [types.Content(role="user", parts=parts)]

    def _build_config(self, request: GenerationRequest) -> Any:
        from google.genai import types

        options = request.options
        config_kwargs: dict[str, Any] = {"response_modalities": ["IMAGE"]}

        image_config: dict[str, str] = {}
        if options.aspect_ratio:
            image_config["aspect_ratio"] = options.aspect_ratio
        if options.image_size:
            image_config["image_size"] = options.image_size
        if image_config:
            config_kwargs["image_config"] = types.ImageConfig(**image_config)

        if options.use_google_search:
            config_kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]

        return types.GenerateContentConfig(**config_kwargs)

    async def generate(self, request: GenerationRequest) -> ImageResult:
        """Generate (or edit) an image.

        Args:
            request: Prompt, optional source image and generation options.

        Returns:
            ImageResult with the first inline image of the first candidate.

        Raises:
            ProviderConnectionError: Network failure or timeout.
            ProviderRejectedError: The API refused the request.
            ContentBlockedError: A safety filter blocked the prompt or image.
            EmptyResultError: The response held no usable image.
        """
        log.debug(
            "image_generate_start",
            model=self._model,
            prompt_length=len(request.prompt),
            has_source_image=request.source_image is not None,
            aspect_ratio=request.options.aspect_ratio,
            image_size=request.options.image_size,
            use_google_search=request.options.use_google_search,
        )

        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._model,
                    contents=self._build_contents(request),
                    config=self._build_config(request),
                ),
                timeout=self._timeout,
            )
        except ProviderError:
            raise
        except Exception as e:
            self._handle_error(e)

        result = self._extract_image(response, request)
        log.info(
            "image_generate_complete",
            model=self._model,
            content_type=result.content_type,
            size_bytes=result.size_bytes,
        )
        return result

    def _extract_image(self, response: Any, request: GenerationRequest) -> ImageResult:
        feedback = getattr(response, "prompt_feedback", None)
        block_reason = _enum_name(getattr(feedback, "block_reason", None))
        if block_reason in _PROMPT_BLOCK_REASONS:
            if block_reason == "SAFETY":
                message = "Image generation blocked for safety reasons"
                suggestion = "Rephrase your prompt to avoid potentially sensitive content"
            else:
                message = "Image generation blocked due to prohibited content"
                suggestion = "Remove any prohibited content from your prompt and try again"
            raise ContentBlockedError(
                _PROVIDER,
                message,
                suggestion=suggestion,
                details={"stage": "prompt_analysis", "block_reason": block_reason},
            )

        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            raise EmptyResultError(
                _PROVIDER,
                "No image generated: Content may have been filtered",
                suggestion="Try rephrasing your prompt to avoid potentially sensitive content",
                details={"stage": "generation", "candidates_count": 0},
            )

        candidate = candidates[0]
        finish_reason = _enum_name(getattr(candidate, "finish_reason", None))
        if finish_reason in _FINISH_BLOCK_REASONS:
            raise ContentBlockedError(
                _PROVIDER,
                "Image generation stopped for safety reasons",
                suggestion="Modify your prompt to avoid potentially sensitive content",
                details={
                    "stage": "generation_stopped",
                    "finish_reason": finish_reason,
                    "safety_ratings": _describe_safety_ratings(candidate),
                },
            )
        if finish_reason == "MAX_TOKENS":
            raise EmptyResultError(
                _PROVIDER,
                "Maximum token limit reached during generation",
                suggestion="Try using a shorter or simpler prompt",
                details={"stage": "generation_stopped", "finish_reason": finish_reason},
            )

        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or []
        if not parts:
            raise EmptyResultError(
                _PROVIDER,
                "No content parts in response",
                suggestion="The generation was incomplete. Please try again",
                details={"stage": "content_extraction"},
            )

        image_part = next(
            (p for p in parts if getattr(p, "inline_data", None) and p.inline_data.data),
            None,
        )
        if image_part is None:
            text_reply = next((p.text for p in parts if getattr(p, "text", None)), None)
            raise EmptyResultError(
                _PROVIDER,
                "Image generation failed due to content filtering",
                suggestion=(
                    "The prompt was blocked by safety filters. Try rephrasing your prompt "
                    "to avoid potentially sensitive content."
                ),
                details={
                    "stage": "image_extraction",
                    "reason": text_reply or "Image generation failed",
                },
            )

        metadata: dict[str, Any] = {
            "input_image_provided": request.source_image is not None,
        }
        model_version = getattr(response, "model_version", None)
        if model_version:
            metadata["model_version"] = model_version
        response_id = getattr(response, "response_id", None)
        if response_id:
            metadata["response_id"] = response_id

        return ImageResult(
            image_data=image_part.inline_data.data,
            content_type=image_part.inline_data.mime_type or "image/png",
            model=self._model,
            prompt=request.prompt,
            provider_metadata=metadata,
        )

    def _handle_error(self, error: Exception) -> NoReturn:
        """Convert SDK and transport exceptions to provider errors."""
        raise classify_gemini_error(error, context="image generation") from error


def classify_gemini_error(error: Exception, *, context: str) -> ProviderError:
    """Map an exception raised by a Gemini call to one provider error.

    Shared by the image provider and the chat text provider.

    Args:
        error: The exception raised by the SDK or transport.
        context: Short description of the failed operation.

    Returns:
        A classified (not yet raised) provider error.
    """
    from google.genai import errors as genai_errors

    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ProviderConnectionError(
            _PROVIDER,
            f"Network error during {context}: request timed out",
            details={"error_type": "timeout"},
        )
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return ProviderConnectionError(
            _PROVIDER,
            f"Network error during {context}: {error}",
            details={"error_type": type(error).__name__},
        )
    if isinstance(error, genai_errors.ServerError):
        return ProviderConnectionError(
            _PROVIDER,
            f"Service unavailable during {context} (HTTP {error.code}): {error.message}",
            suggestion="The Gemini service is temporarily unavailable. Try again shortly",
            details={"status_code": error.code},
        )
    if isinstance(error, genai_errors.APIError):
        return ProviderRejectedError(
            _PROVIDER,
            f"Failed during {context} (HTTP {error.code}): {error.message}",
            suggestion=_rejection_suggestion(error.code, str(error.message or "")),
            details={"status_code": error.code, "status": error.status},
        )
    return ProviderRejectedError(
        _PROVIDER,
        f"Failed during {context}: {error}",
        suggestion=(
            "Check your API key, quota, and prompt validity. Try again with a different prompt"
        ),
    )


def _rejection_suggestion(status_code: int | None, message: str) -> str:
    lowered = message.lower()
    if status_code == 429 or "quota" in lowered or "rate limit" in lowered:
        return (
            "You have exceeded your API quota or rate limit. "
            "Wait before making more requests or upgrade your plan"
        )
    if status_code == 401 or "api key" in lowered or "unauthorized" in lowered:
        return "Check that your GEMINI_API_KEY is valid and has the necessary permissions"
    if status_code == 403:
        return "Your API key does not have permission for this operation"
    return "Check your API configuration and try again"
