"""Tests for the generate_image tool surface."""

from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from pathlib import Path
from typing import Any

import pytest

from figforge.config import Settings
from figforge.providers.base import ContentBlockedError
from figforge.providers.image_placeholder import PLACEHOLDER_MODEL
from figforge.qa.checks import get_effective_checks
from figforge.service import (
    TOOL_NAME,
    BackendClients,
    FigureService,
    create_backend_clients,
    read_source_image,
    tool_descriptors,
)


def _all_pass(style: str) -> str:
    return json.dumps(
        {
            "checks": [
                {"id": check.id, "status": "pass", "detail": "ok"}
                for check in get_effective_checks(style)
            ]
        }
    )


class _CountingFactory:
    def __init__(self, clients: BackendClients) -> None:
        self.clients = clients
        self.calls = 0

    def __call__(self, settings: Settings) -> BackendClients:
        self.calls += 1
        return self.clients


class TestToolDescriptors:
    def test_single_tool(self) -> None:
        (tool,) = tool_descriptors()

        assert tool["name"] == TOOL_NAME
        assert tool["inputSchema"]["required"] == ["prompt"]

    def test_service_lists_tools(self, offline_settings: Settings) -> None:
        assert FigureService(offline_settings).list_tools() == tool_descriptors()


class TestCreateBackendClients:
    def test_offline(self, offline_settings: Settings) -> None:
        clients = create_backend_clients(offline_settings)

        assert clients.text is None
        assert clients.qa_text is None


class TestReadSourceImage:
    def test_magic_bytes_win(self, tmp_path: Path, jpeg_bytes: bytes) -> None:
        path = tmp_path / "photo.png"
        path.write_bytes(jpeg_bytes)

        source = read_source_image(path)

        assert source.mime_type == "image/jpeg"
        assert source.data == jpeg_bytes

    def test_unknown_bytes_use_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "photo.webp"
        path.write_bytes(b"mystery")

        assert read_source_image(path).mime_type == "image/webp"

    def test_unreadable(self, tmp_path: Path) -> None:
        from figforge.errors import FileOperationError

        with pytest.raises(FileOperationError, match="Failed to read input image file"):
            read_source_image(tmp_path)


class TestFigureService:
    @pytest.mark.asyncio()
    async def test_offline_generation(self, offline_settings: Settings) -> None:
        service = FigureService(offline_settings)

        response = await service.call_tool(TOOL_NAME, {"prompt": "a lighthouse"})

        assert response["isError"] is False
        structured = response["structuredContent"]
        assert structured["metadata"]["model"] == PLACEHOLDER_MODEL
        assert structured["metadata"]["contextMethod"] == "structured_prompt"
        saved = Path(structured["resource"]["name"])
        assert (offline_settings.output_dir / saved).read_bytes()[:4] == b"\x89PNG"

    @pytest.mark.asyncio()
    async def test_requested_file_name(self, offline_settings: Settings) -> None:
        service = FigureService(offline_settings)

        response = await service.call_tool(
            TOOL_NAME, {"prompt": "a lighthouse", "fileName": "lighthouse.jpg"}
        )

        assert response["structuredContent"]["resource"]["name"] == "lighthouse.png"
        assert (offline_settings.output_dir / "lighthouse.png").exists()

    @pytest.mark.asyncio()
    async def test_unknown_tool(self, offline_settings: Settings) -> None:
        response = await FigureService(offline_settings).call_tool("edit_image", {})

        assert response["isError"] is True
        error = response["structuredContent"]["error"]
        assert error["code"] == "INPUT_VALIDATION_ERROR"
        assert error["message"] == "Unknown tool: edit_image"

    @pytest.mark.asyncio()
    async def test_validation_error_skips_backends(self, offline_settings: Settings) -> None:
        factory = _CountingFactory(BackendClients(image=None))  # type: ignore[arg-type]
        service = FigureService(offline_settings, clients_factory=factory)

        response = await service.call_tool(TOOL_NAME, {"prompt": ""})

        assert response["isError"] is True
        assert response["structuredContent"]["error"]["code"] == "INPUT_VALIDATION_ERROR"
        assert factory.calls == 0

    @pytest.mark.asyncio()
    async def test_clients_built_once(
        self, offline_settings: Settings, fake_image_provider: Any, png_bytes: bytes
    ) -> None:
        factory = _CountingFactory(BackendClients(image=fake_image_provider(png_bytes)))
        service = FigureService(offline_settings, clients_factory=factory)

        await asyncio.gather(
            service.call_tool(TOOL_NAME, {"prompt": "one"}),
            service.call_tool(TOOL_NAME, {"prompt": "two"}),
        )

        assert factory.calls == 1

    @pytest.mark.asyncio()
    async def test_enrichment_and_qa(
        self,
        offline_settings: Settings,
        fake_image_provider: Any,
        fake_text_provider: Any,
        png_bytes: bytes,
    ) -> None:
        image = fake_image_provider(png_bytes)
        text = fake_text_provider("An enriched chart prompt")
        judge = fake_text_provider(_all_pass("scientific_chart"))
        settings = replace(offline_settings, qa_enabled=True)
        service = FigureService(
            settings,
            clients_factory=lambda _: BackendClients(image=image, text=text, qa_text=judge),
        )

        response = await service.call_tool(
            TOOL_NAME, {"prompt": "bar chart of glacier loss", "figureStyle": "scientific_chart"}
        )

        assert response["isError"] is False
        assert image.prompts == ["An enriched chart prompt"]
        metadata = response["structuredContent"]["metadata"]
        assert metadata["figureStyle"] == "scientific_chart"
        assert metadata["qa"]["passed"] is True
        assert metadata["qa"]["status"] == "passed"
        assert metadata["qa"]["attempts"] == 1
        assert len(judge.calls) == 1
        assert judge.calls[0]["input_image"] == (png_bytes, "image/png")

    @pytest.mark.asyncio()
    async def test_skip_prompt_enhancement(
        self,
        offline_settings: Settings,
        fake_image_provider: Any,
        fake_text_provider: Any,
        png_bytes: bytes,
    ) -> None:
        image = fake_image_provider(png_bytes)
        text = fake_text_provider("unused")
        settings = replace(offline_settings, skip_prompt_enhancement=True)
        service = FigureService(
            settings, clients_factory=lambda _: BackendClients(image=image, text=text)
        )

        await service.call_tool(TOOL_NAME, {"prompt": "verbatim"})

        assert image.prompts == ["verbatim"]
        assert text.calls == []

    @pytest.mark.asyncio()
    async def test_source_image_forwarded(
        self,
        offline_settings: Settings,
        fake_image_provider: Any,
        tmp_path: Path,
        jpeg_bytes: bytes,
        png_bytes: bytes,
    ) -> None:
        source = tmp_path / "source.png"
        source.write_bytes(jpeg_bytes)
        image = fake_image_provider(png_bytes)
        service = FigureService(
            offline_settings, clients_factory=lambda _: BackendClients(image=image)
        )

        response = await service.call_tool(
            TOOL_NAME, {"prompt": "make it blue", "inputImagePath": str(source)}
        )

        assert response["isError"] is False
        sent = image.requests[0].source_image
        assert sent is not None
        assert sent.mime_type == "image/jpeg"

    @pytest.mark.asyncio()
    async def test_provider_error_envelope(
        self, offline_settings: Settings, fake_image_provider: Any, png_bytes: bytes
    ) -> None:
        blocked = ContentBlockedError("gemini", "Image generation blocked for safety reasons")
        image = fake_image_provider(png_bytes, blocked)
        service = FigureService(
            offline_settings, clients_factory=lambda _: BackendClients(image=image)
        )

        response = await service.call_tool(TOOL_NAME, {"prompt": "x"})

        assert response["isError"] is True
        error = response["structuredContent"]["error"]
        assert error["code"] == "GEMINI_API_ERROR"
        assert "blocked" in error["message"]
        assert not offline_settings.output_dir.exists()

    @pytest.mark.asyncio()
    async def test_unexpected_error_envelope(
        self, offline_settings: Settings, fake_image_provider: Any, png_bytes: bytes
    ) -> None:
        image = fake_image_provider(png_bytes, RuntimeError("disk gremlins"))
        service = FigureService(
            offline_settings, clients_factory=lambda _: BackendClients(image=image)
        )

        response = await service.call_tool(TOOL_NAME, {"prompt": "x"})

        assert response["isError"] is True
        assert response["structuredContent"]["error"]["code"] == "UNKNOWN_ERROR"
        assert response["structuredContent"]["error"]["message"] == "disk gremlins"
