"""Figure storage on the local filesystem."""

from __future__ import annotations

import random
import time
from pathlib import Path, PurePath

from figforge.errors import FileOperationError
from figforge.formats import extension_for
from figforge.observability.logging import get_logger
from figforge.security import PathGuard, default_allowed_roots, sanitize_filename

log = get_logger(__name__)

FILE_NAME_PREFIX = "image"


def generate_file_name(data: bytes | None = None) -> str:
    """``image-<ms>-<0..999><ext>`` with the extension taken from the data's format."""
    timestamp = int(time.time() * 1000)
    suffix = random.randrange(1000)
    ext = extension_for(data) if data is not None else ".png"
    return f"{FILE_NAME_PREFIX}-{timestamp}-{suffix}{ext}"


def correct_extension(file_name: str, data: bytes) -> str:
    """Replace the file name's extension with the one the data actually needs."""
    actual = extension_for(data)
    stem = PurePath(file_name).stem if PurePath(file_name).suffix else file_name
    corrected = f"{stem}{actual}"
    requested = PurePath(file_name).suffix.lower()
    if requested and requested != actual:
        log.warning(
            "file_extension_corrected",
            requested=file_name,
            actual=corrected,
            detected_extension=actual,
        )
    return corrected


class FigureStore:
    """Write generated figures into an output directory.

    Args:
        output_dir: Directory that receives the figures.
        guard: Path policy; defaults to the standard allowed roots.
    """

    def __init__(self, output_dir: Path, guard: PathGuard | None = None) -> None:
        self.output_dir = output_dir
        self._guard = guard or PathGuard(default_allowed_roots(output_dir))

    def resolve_target(self, data: bytes, file_name: str | None = None) -> Path:
        """Choose and vet the destination path for ``data``.

        Raises:
            SecurityError: If the resulting path violates the path policy.
        """
        if file_name:
            name = correct_extension(sanitize_filename(file_name), data)
        else:
            name = generate_file_name(data)
        return self._guard.sanitize_path(self.output_dir / name)

    def save(self, data: bytes, file_name: str | None = None) -> Path:
        """Write ``data`` and return its absolute path.

        Raises:
            SecurityError: If the destination violates the path policy.
            FileOperationError: If the directory or file cannot be written.
        """
        path = self.resolve_target(data, file_name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileOperationError(f"Failed to create directory: {e}") from e
        try:
            path.write_bytes(data)
        except OSError as e:
            raise FileOperationError(f"Failed to save image file: {e}") from e

        log.debug("figure_stored", path=str(path), size_bytes=len(data))
        return path
