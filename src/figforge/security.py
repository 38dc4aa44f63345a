"""File path policy for anything read from or written to disk."""

from __future__ import annotations

import re
import time
from pathlib import Path

from figforge.errors import SecurityError

_STRIP_CHARS = re.compile(r"[\x00-\x1f\x7f/\\]")
_EDGE_DOTS = re.compile(r"^\.+|\.+$")


def default_allowed_roots(output_dir: Path) -> list[Path]:
    """Working directory, output directory, ``./temp``, ``./tmp`` and ``/tmp``."""
    return [
        Path.cwd(),
        output_dir,
        Path("./temp"),
        Path("./tmp"),
        Path("/tmp"),
    ]


class PathGuard:
    """Resolve paths and reject any that escape the allowed roots.

    Args:
        allowed_roots: Directories under which paths are accepted.
    """

    def __init__(self, allowed_roots: list[Path]) -> None:
        self._roots = [root.resolve() for root in allowed_roots]

    @property
    def allowed_roots(self) -> list[Path]:
        return list(self._roots)

    def is_allowed(self, target: str | Path) -> bool:
        resolved = Path(target).resolve()
        return any(resolved.is_relative_to(root) for root in self._roots)

    def sanitize_path(self, target: str | Path) -> Path:
        """Return the resolved path, or raise if it violates the policy.

        Raises:
            SecurityError: On null bytes, ``..`` segments, or paths outside
                the allowed roots.
        """
        raw = str(target)
        if "\0" in raw:
            raise SecurityError("Null byte detected in file path")
        if ".." in Path(raw).parts:
            raise SecurityError("Path traversal attempt detected")
        if not self.is_allowed(raw):
            raise SecurityError("File path outside allowed directories")
        return Path(raw).resolve()


def sanitize_filename(filename: str) -> str:
    """Strip separators, control characters and leading/trailing dots.

    Falls back to ``secure-file-<ms>`` when nothing is left.
    """
    sanitized = _EDGE_DOTS.sub("", _STRIP_CHARS.sub("", filename)).strip()
    if not sanitized:
        sanitized = f"secure-file-{int(time.time() * 1000)}"
    return sanitized
