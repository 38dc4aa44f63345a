"""Tests for GeminiImageProvider response handling and error classification."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
from google.genai import errors as genai_errors

from figforge.providers.base import (
    ContentBlockedError,
    EmptyResultError,
    FailureKind,
    ProviderConnectionError,
    ProviderRejectedError,
)
from figforge.providers.image import GenerationOptions, GenerationRequest, SourceImage
from figforge.providers.image_gemini import (
    DEFAULT_IMAGE_MODEL,
    GeminiImageProvider,
    classify_gemini_error,
)


def _image_part(data: bytes, mime_type: str = "image/png") -> SimpleNamespace:
    return SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type), text=None)


def _text_part(text: str) -> SimpleNamespace:
    return SimpleNamespace(inline_data=None, text=text)


def _response(
    parts: list[Any] | None = None,
    *,
    finish_reason: str = "STOP",
    block_reason: str | None = None,
    candidates: list[Any] | None = None,
    safety_ratings: list[Any] | None = None,
) -> SimpleNamespace:
    if candidates is None:
        candidates = [
            SimpleNamespace(
                finish_reason=finish_reason,
                content=SimpleNamespace(parts=parts or []),
                safety_ratings=safety_ratings,
            )
        ]
    feedback = SimpleNamespace(block_reason=block_reason) if block_reason else None
    return SimpleNamespace(
        prompt_feedback=feedback,
        candidates=candidates,
        model_version="gemini-3-pro-image-preview-001",
        response_id="resp-1",
    )


def _client(result: Any = None, *, side_effect: Any = None) -> SimpleNamespace:
    generate_content = AsyncMock(return_value=result, side_effect=side_effect)
    models = SimpleNamespace(generate_content=generate_content)
    return SimpleNamespace(aio=SimpleNamespace(models=models))


def _provider(client: Any, timeout: float = 5.0) -> GeminiImageProvider:
    return GeminiImageProvider(client=client, timeout=timeout)


class TestConstruction:
    def test_requires_api_key_without_client(self) -> None:
        with pytest.raises(ProviderRejectedError, match="API key required"):
            GeminiImageProvider()

    def test_injected_client_needs_no_key(self) -> None:
        provider = _provider(_client())

        assert provider.model == DEFAULT_IMAGE_MODEL


class TestGenerate:
    @pytest.mark.asyncio()
    async def test_returns_first_inline_image(self, png_bytes: bytes) -> None:
        client = _client(_response([_text_part("Here you go"), _image_part(png_bytes)]))

        result = await _provider(client).generate(GenerationRequest(prompt="a glacier"))

        assert result.image_data == png_bytes
        assert result.content_type == "image/png"
        assert result.model == DEFAULT_IMAGE_MODEL
        assert result.prompt == "a glacier"
        assert result.provider_metadata == {
            "input_image_provided": False,
            "model_version": "gemini-3-pro-image-preview-001",
            "response_id": "resp-1",
        }

    @pytest.mark.asyncio()
    async def test_request_shape(self, png_bytes: bytes, jpeg_bytes: bytes) -> None:
        client = _client(_response([_image_part(png_bytes)]))
        request = GenerationRequest(
            prompt="make it blue",
            source_image=SourceImage(data=jpeg_bytes, mime_type="image/jpeg"),
            options=GenerationOptions(
                aspect_ratio="16:9", image_size="4K", use_google_search=True
            ),
        )

        result = await _provider(client).generate(request)

        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == DEFAULT_IMAGE_MODEL
        parts = kwargs["contents"][0].parts
        assert parts[0].inline_data.data == jpeg_bytes
        assert parts[0].inline_data.mime_type == "image/jpeg"
        assert parts[1].text == "make it blue"
        config = kwargs["config"]
        assert config.response_modalities == ["IMAGE"]
        assert config.image_config.aspect_ratio == "16:9"
        assert config.image_config.image_size == "4K"
        assert config.tools[0].google_search is not None
        assert result.provider_metadata["input_image_provided"] is True

    @pytest.mark.asyncio()
    async def test_minimal_config(self, png_bytes: bytes) -> None:
        client = _client(_response([_image_part(png_bytes)]))

        await _provider(client).generate(GenerationRequest(prompt="x"))

        config = client.aio.models.generate_content.call_args.kwargs["config"]
        assert config.image_config is None
        assert not config.tools

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("reason", ["SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "OTHER"])
    async def test_prompt_blocked(self, reason: str) -> None:
        client = _client(_response(block_reason=reason))

        with pytest.raises(ContentBlockedError) as exc_info:
            await _provider(client).generate(GenerationRequest(prompt="x"))

        assert exc_info.value.kind is FailureKind.CONTENT_BLOCKED
        assert exc_info.value.details["block_reason"] == reason

    @pytest.mark.asyncio()
    async def test_no_candidates(self) -> None:
        client = _client(_response(candidates=[]))

        with pytest.raises(EmptyResultError):
            await _provider(client).generate(GenerationRequest(prompt="x"))

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("reason", ["IMAGE_SAFETY", "SAFETY", "PROHIBITED_CONTENT"])
    async def test_finish_reason_blocked(self, reason: str) -> None:
        ratings = [SimpleNamespace(category="HARM_CATEGORY_DANGEROUS_CONTENT", blocked=True)]
        client = _client(_response(finish_reason=reason, safety_ratings=ratings))

        with pytest.raises(ContentBlockedError) as exc_info:
            await _provider(client).generate(GenerationRequest(prompt="x"))

        assert exc_info.value.details["safety_ratings"] == "Dangerous Content (BLOCKED)"

    @pytest.mark.asyncio()
    async def test_max_tokens(self) -> None:
        client = _client(_response(finish_reason="MAX_TOKENS"))

        with pytest.raises(EmptyResultError, match="Maximum token limit"):
            await _provider(client).generate(GenerationRequest(prompt="x"))

    @pytest.mark.asyncio()
    async def test_no_parts(self) -> None:
        client = _client(_response([]))

        with pytest.raises(EmptyResultError, match="No content parts"):
            await _provider(client).generate(GenerationRequest(prompt="x"))

    @pytest.mark.asyncio()
    async def test_text_only_reply(self) -> None:
        client = _client(_response([_text_part("I cannot draw that.")]))

        with pytest.raises(EmptyResultError) as exc_info:
            await _provider(client).generate(GenerationRequest(prompt="x"))

        assert exc_info.value.details["reason"] == "I cannot draw that."

    @pytest.mark.asyncio()
    async def test_timeout_is_network_failure(self) -> None:
        async def _slow(**_: Any) -> None:
            await asyncio.sleep(1)

        models = SimpleNamespace(generate_content=_slow)
        client = SimpleNamespace(aio=SimpleNamespace(models=models))

        with pytest.raises(ProviderConnectionError, match="timed out"):
            await _provider(client, timeout=0.01).generate(GenerationRequest(prompt="x"))

    @pytest.mark.asyncio()
    async def test_api_error_is_rejected(self) -> None:
        error = genai_errors.ClientError(
            429,
            {"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}},
        )
        client = _client(side_effect=error)

        with pytest.raises(ProviderRejectedError) as exc_info:
            await _provider(client).generate(GenerationRequest(prompt="x"))

        assert "quota" in exc_info.value.suggestion.lower()
        assert exc_info.value.__cause__ is error


class TestClassifyGeminiError:
    def test_transport_error(self) -> None:
        error = classify_gemini_error(httpx.ConnectError("refused"), context="image generation")

        assert isinstance(error, ProviderConnectionError)
        assert error.code == "NETWORK_ERROR"

    def test_server_error_is_network(self) -> None:
        server = genai_errors.ServerError(
            503, {"error": {"code": 503, "message": "overloaded", "status": "UNAVAILABLE"}}
        )

        error = classify_gemini_error(server, context="image generation")

        assert isinstance(error, ProviderConnectionError)
        assert error.details["status_code"] == 503

    def test_unauthorized(self) -> None:
        client_error = genai_errors.ClientError(
            401, {"error": {"code": 401, "message": "bad key", "status": "UNAUTHENTICATED"}}
        )

        error = classify_gemini_error(client_error, context="text generation")

        assert isinstance(error, ProviderRejectedError)
        assert error.code == "GEMINI_API_ERROR"
        assert "GEMINI_API_KEY" in error.suggestion

    def test_unknown_exception(self) -> None:
        error = classify_gemini_error(RuntimeError("weird"), context="image generation")

        assert isinstance(error, ProviderRejectedError)
        assert "weird" in str(error)
