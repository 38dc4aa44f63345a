"""Placeholder image provider for offline runs.

Generates minimal solid-color PNG images with no network access.
Zero cost, instant generation, used by ``--image-provider placeholder``
and by tests that exercise the full tool path.
"""

from __future__ import annotations

import hashlib
import struct
import zlib

from figforge.providers.image import GenerationRequest, ImageResult

PLACEHOLDER_MODEL = "placeholder"

# Kept small; these images never leave a test or dry run.
_ASPECT_RATIO_TO_SIZE: dict[str, tuple[int, int]] = {
    "1:1": (256, 256),
    "2:3": (256, 384),
    "3:2": (384, 256),
    "3:4": (240, 320),
    "4:3": (320, 240),
    "4:5": (256, 320),
    "5:4": (320, 256),
    "9:16": (360, 640),
    "16:9": (640, 360),
    "21:9": (672, 288),
}

# Figure-friendly light tones; dark text would stay readable on any of them.
_PALETTE: list[tuple[int, int, int]] = [
    (245, 245, 245),  # paper white
    (232, 240, 250),  # pale blue
    (236, 246, 236),  # pale green
    (250, 244, 230),  # cream
    (240, 236, 246),  # lavender
]


def _make_png(width: int, height: int, r: int, g: int, b: int) -> bytes:
    """Generate a minimal solid-color RGB PNG in pure Python.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        r: Red channel (0-255).
        g: Green channel (0-255).
        b: Blue channel (0-255).

    Returns:
        Raw PNG bytes.
    """

    def _chunk(chunk_type: bytes, data: bytes) -> bytes:
        payload = chunk_type + data
        crc = struct.pack(">I", zlib.crc32(payload) & 0xFFFFFFFF)
        return struct.pack(">I", len(data)) + payload + crc

    sig = b"\x89PNG\r\n\x1a\n"
    ihdr = _chunk(b"IHDR", struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0))

    # filter byte 0 + RGB triplets per row
    row = bytes([0]) + bytes([r, g, b]) * width
    idat = _chunk(b"IDAT", zlib.compress(row * height))
    iend = _chunk(b"IEND", b"")

    return sig + ihdr + idat + iend


class PlaceholderImageProvider:
    """Image provider that returns a solid-color PNG for every request.

    The color is chosen deterministically from the prompt hash, so a
    patched retry prompt yields a visibly different placeholder.
    """

    async def generate(self, request: GenerationRequest) -> ImageResult:
        """Generate a placeholder PNG sized from the request's aspect ratio."""
        ratio = request.options.aspect_ratio or "1:1"
        width, height = _ASPECT_RATIO_TO_SIZE.get(ratio, _ASPECT_RATIO_TO_SIZE["1:1"])

        idx = int(hashlib.md5(request.prompt.encode()).hexdigest(), 16) % len(_PALETTE)
        r, g, b = _PALETTE[idx]

        return ImageResult(
            image_data=_make_png(width, height, r, g, b),
            content_type="image/png",
            model=PLACEHOLDER_MODEL,
            prompt=request.prompt,
            provider_metadata={
                "quality": "placeholder",
                "size": f"{width}x{height}",
                "color": f"#{r:02x}{g:02x}{b:02x}",
                "input_image_provided": request.source_image is not None,
            },
        )
