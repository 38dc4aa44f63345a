"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from figforge.config import Settings
from figforge.providers.image import GenerationRequest, ImageResult
from figforge.providers.image_placeholder import _make_png

_FIGFORGE_ENV_VARS = (
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "IMAGE_OUTPUT_DIR",
    "FIGFORGE_API_TIMEOUT",
    "SKIP_PROMPT_ENHANCEMENT",
    "SCIENTIFIC_QA_ENABLED",
    "SCIENTIFIC_QA_MAX_RETRIES",
    "SCIENTIFIC_QA_MODEL",
    "FIGFORGE_IMAGE_PROVIDER",
    "FIGFORGE_TEXT_PROVIDER",
    "FIGFORGE_CONFIG",
)


@pytest.fixture(autouse=True)
def clean_figforge_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's shell and .env out of every test."""
    for name in _FIGFORGE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def png_bytes() -> bytes:
    """A tiny but valid PNG."""
    return _make_png(4, 4, 200, 200, 200)


@pytest.fixture
def jpeg_bytes() -> bytes:
    """Bytes carrying a JPEG signature (content is not decodable)."""
    return b"\xff\xd8\xff\xe0" + b"\x00" * 28


class FakeTextProvider:
    """TextProvider double that replays scripted replies.

    Each scripted item is either a string (returned) or an exception (raised).
    The last item repeats once the script is exhausted.
    """

    def __init__(self, *replies: str | BaseException) -> None:
        self._replies = list(replies) or [""]
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        instruction: str,
        *,
        temperature: float,
        max_tokens: int,
        system_instruction: str | None = None,
        input_image: tuple[bytes, str] | None = None,
    ) -> str:
        self.calls.append(
            {
                "instruction": instruction,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "system_instruction": system_instruction,
                "input_image": input_image,
            }
        )
        index = min(len(self.calls) - 1, len(self._replies) - 1)
        reply = self._replies[index]
        if isinstance(reply, BaseException):
            raise reply
        return reply


class FakeImageProvider:
    """ImageProvider double returning a fixed PNG, or raising scripted errors."""

    def __init__(self, image_data: bytes, *errors: BaseException | None) -> None:
        self._image_data = image_data
        self._errors = list(errors)
        self.requests: list[GenerationRequest] = []

    async def generate(self, request: GenerationRequest) -> ImageResult:
        self.requests.append(request)
        index = len(self.requests) - 1
        if index < len(self._errors) and self._errors[index] is not None:
            raise self._errors[index]
        return ImageResult(
            image_data=self._image_data,
            content_type="image/png",
            model="fake-image-model",
            prompt=request.prompt,
        )

    @property
    def prompts(self) -> list[str]:
        return [r.prompt for r in self.requests]


def qa_reply(statuses: dict[str, str], *, detail: str = "looks fine") -> str:
    """Evaluator JSON reply with the given ``{check_id: status}`` map."""
    return json.dumps(
        {"checks": [{"id": cid, "status": s, "detail": detail} for cid, s in statuses.items()]}
    )


@pytest.fixture
def fake_text_provider() -> type[FakeTextProvider]:
    return FakeTextProvider


@pytest.fixture
def fake_image_provider() -> type[FakeImageProvider]:
    return FakeImageProvider


@pytest.fixture
def make_qa_reply() -> Any:
    return qa_reply


@pytest.fixture
def offline_settings(tmp_path: Path) -> Settings:
    """Settings needing no API key: placeholder images, no text backend."""
    return Settings(
        output_dir=tmp_path / "output",
        image_provider="placeholder",
        text_provider="none",
    )
