"""Image generation provider protocol and types.

Defines the ImageProvider protocol for image generation backends and the
immutable request/result values exchanged with them.

Implementations:
    - GeminiImageProvider (image_gemini.py): gemini-3-pro-image-preview
    - PlaceholderImageProvider (image_placeholder.py): offline solid-color PNGs
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any, Literal, Protocol, runtime_checkable

AspectRatio = Literal["1:1", "2:3", "3:2", "3:4", "4:3", "4:5", "5:4", "9:16", "16:9", "21:9"]
ImageSize = Literal["2K", "4K"]
EditMode = Literal["strict", "creative"]

ASPECT_RATIOS: tuple[str, ...] = (
    "1:1",
    "2:3",
    "3:2",
    "3:4",
    "4:3",
    "4:5",
    "5:4",
    "9:16",
    "16:9",
    "21:9",
)
IMAGE_SIZES: tuple[str, ...] = ("2K", "4K")
EDIT_MODES: tuple[str, ...] = ("strict", "creative")


@dataclass(frozen=True)
class SourceImage:
    """An input image supplied for editing."""

    data: bytes
    mime_type: str = "image/png"

    @property
    def b64(self) -> str:
        """Base64 text of the image bytes."""
        return base64.b64encode(self.data).decode("ascii")


@dataclass(frozen=True)
class GenerationOptions:
    """Per-request generation knobs.

    Attributes:
        aspect_ratio: Output aspect ratio, or None for the backend default.
        image_size: Resolution tier (``2K``/``4K``), or None.
        figure_style: Scientific figure style tag, or None.
        use_google_search: Ground generation with Google Search.
        edit_mode: Fidelity when editing a source image.
    """

    aspect_ratio: str | None = None
    image_size: str | None = None
    figure_style: str | None = None
    use_google_search: bool = False
    edit_mode: str | None = None


@dataclass(frozen=True)
class GenerationRequest:
    """One call to an image backend."""

    prompt: str
    source_image: SourceImage | None = None
    options: GenerationOptions = field(default_factory=GenerationOptions)

    def with_prompt(self, prompt: str) -> GenerationRequest:
        """Return a copy that differs only in ``prompt``."""
        return replace(self, prompt=prompt)


@dataclass(frozen=True)
class ImageResult:
    """Result of an image generation call.

    Attributes:
        image_data: Raw image bytes.
        content_type: MIME type (e.g., ``image/png``).
        model: Model identifier that produced the image.
        prompt: Echo of the prompt sent to the backend.
        created_at: Generation timestamp.
        provider_metadata: Provider-specific metadata (response id, etc.).
    """

    image_data: bytes
    content_type: str = "image/png"
    model: str = ""
    prompt: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    provider_metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def size_bytes(self) -> int:
        """Size of image data in bytes."""
        return len(self.image_data)

    @classmethod
    def from_base64(
        cls,
        b64_data: str,
        content_type: str = "image/png",
        *,
        model: str = "",
        prompt: str = "",
        **metadata: Any,
    ) -> ImageResult:
        """Create from base64-encoded image data.

        Args:
            b64_data: Base64-encoded image string.
            content_type: MIME type of the image.
            model: Model identifier.
            prompt: Prompt used for generation.
            **metadata: Additional provider metadata.

        Returns:
            ImageResult with decoded bytes.
        """
        return cls(
            image_data=base64.b64decode(b64_data),
            content_type=content_type,
            model=model,
            prompt=prompt,
            provider_metadata=metadata,
        )


@runtime_checkable
class ImageProvider(Protocol):
    """Protocol for image generation backends.

    All image providers must implement the ``generate`` method.
    The protocol is runtime-checkable for isinstance() validation.
    """

    async def generate(self, request: GenerationRequest) -> ImageResult:
        """Generate an image for one request.

        Args:
            request: Prompt, optional source image and generation options.

        Returns:
            ImageResult with generated image data.

        Raises:
            ProviderError: A classified failure (see ``FailureKind``).
        """
        ...
