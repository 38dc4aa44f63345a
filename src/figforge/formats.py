"""Raster format sniffing by magic bytes.

Only PNG, JPEG, GIF, BMP and WEBP are recognized. Unknown or short data
(under 12 bytes) is treated as PNG.
"""

from __future__ import annotations

from pathlib import PurePath

DEFAULT_MIME_TYPE = "image/png"
DEFAULT_EXTENSION = ".png"

_MIN_HEADER = 12

_MIME_TO_EXT: dict[str, str] = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/bmp": ".bmp",
    "image/webp": ".webp",
}

EXTENSION_MIME_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
}


def detect_mime_type(data: bytes) -> str | None:
    """Return the MIME type implied by the leading bytes, or None if unknown."""
    if len(data) < _MIN_HEADER:
        return None
    if data[:4] == b"\x89PNG":
        return "image/png"
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:4] == b"GIF8":
        return "image/gif"
    if data[:2] == b"BM":
        return "image/bmp"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return None


def extension_for(data: bytes) -> str:
    """File extension (with dot) matching the data's actual format."""
    mime_type = detect_mime_type(data)
    return _MIME_TO_EXT[mime_type] if mime_type else DEFAULT_EXTENSION


def mime_type_for_path(path: str | PurePath) -> str | None:
    """MIME type implied by a file name's extension, or None."""
    return EXTENSION_MIME_TYPES.get(PurePath(path).suffix.lower())
