"""Tests for PlaceholderImageProvider."""

from __future__ import annotations

import pytest

from figforge.formats import detect_mime_type
from figforge.providers.image import GenerationOptions, GenerationRequest, ImageProvider
from figforge.providers.image_placeholder import (
    PLACEHOLDER_MODEL,
    PlaceholderImageProvider,
    _make_png,
)


class TestMakePng:
    """Test the pure-Python PNG generator."""

    def test_produces_valid_png_signature(self) -> None:
        data = _make_png(2, 2, 128, 128, 128)
        assert data[:8] == b"\x89PNG\r\n\x1a\n"
        assert detect_mime_type(data) == "image/png"

    def test_different_colors_produce_different_data(self) -> None:
        assert _make_png(4, 4, 255, 0, 0) != _make_png(4, 4, 0, 0, 255)


class TestPlaceholderImageProvider:
    def test_conforms_to_protocol(self) -> None:
        assert isinstance(PlaceholderImageProvider(), ImageProvider)

    @pytest.mark.asyncio()
    async def test_generate_returns_png(self) -> None:
        result = await PlaceholderImageProvider().generate(GenerationRequest(prompt="test"))

        assert result.image_data[:8] == b"\x89PNG\r\n\x1a\n"
        assert result.content_type == "image/png"
        assert result.model == PLACEHOLDER_MODEL
        assert result.provider_metadata["size"] == "256x256"
        assert result.provider_metadata["input_image_provided"] is False

    @pytest.mark.asyncio()
    @pytest.mark.parametrize(
        ("ratio", "size"),
        [("16:9", "640x360"), ("4:3", "320x240"), ("21:9", "672x288"), ("9:16", "360x640")],
    )
    async def test_aspect_ratio_sizes(self, ratio: str, size: str) -> None:
        request = GenerationRequest(prompt="x", options=GenerationOptions(aspect_ratio=ratio))

        result = await PlaceholderImageProvider().generate(request)

        assert result.provider_metadata["size"] == size

    @pytest.mark.asyncio()
    async def test_deterministic_color(self) -> None:
        provider = PlaceholderImageProvider()
        r1 = await provider.generate(GenerationRequest(prompt="hello world"))
        r2 = await provider.generate(GenerationRequest(prompt="hello world"))

        assert r1.image_data == r2.image_data
        assert r1.provider_metadata["color"] == r2.provider_metadata["color"]
