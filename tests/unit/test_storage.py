"""Tests for figure storage."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from figforge.errors import FileOperationError, SecurityError
from figforge.security import PathGuard
from figforge.storage import FigureStore, correct_extension, generate_file_name

_NAME_PATTERN = re.compile(r"^image-\d+-\d{1,3}\.(png|jpg)$")


class TestFileNames:
    def test_generated_name_shape(self, png_bytes: bytes, jpeg_bytes: bytes) -> None:
        assert _NAME_PATTERN.match(generate_file_name(png_bytes))
        assert generate_file_name(jpeg_bytes).endswith(".jpg")
        assert generate_file_name().endswith(".png")

    def test_correct_extension_replaces_mismatch(self, jpeg_bytes: bytes) -> None:
        assert correct_extension("figure.png", jpeg_bytes) == "figure.jpg"

    def test_correct_extension_adds_missing(self, png_bytes: bytes) -> None:
        assert correct_extension("figure", png_bytes) == "figure.png"

    def test_correct_extension_keeps_match(self, png_bytes: bytes) -> None:
        assert correct_extension("figure.PNG", png_bytes) == "figure.png"


class TestFigureStore:
    def test_save_generated_name(self, tmp_path: Path, png_bytes: bytes) -> None:
        store = FigureStore(tmp_path / "out")

        path = store.save(png_bytes)

        assert path.parent == (tmp_path / "out").resolve()
        assert _NAME_PATTERN.match(path.name)
        assert path.read_bytes() == png_bytes

    def test_save_requested_name(self, tmp_path: Path, jpeg_bytes: bytes) -> None:
        store = FigureStore(tmp_path)

        path = store.save(jpeg_bytes, "glacier.png")

        assert path.name == "glacier.jpg"
        assert path.read_bytes() == jpeg_bytes

    def test_requested_name_cannot_escape(self, tmp_path: Path, png_bytes: bytes) -> None:
        store = FigureStore(tmp_path / "out")

        path = store.save(png_bytes, "../../escape.png")

        assert path.parent == (tmp_path / "out").resolve()
        assert path.name == "escape.png"

    def test_output_dir_outside_policy(self, tmp_path: Path, png_bytes: bytes) -> None:
        store = FigureStore(tmp_path / "out", guard=PathGuard([tmp_path / "other"]))

        with pytest.raises(SecurityError):
            store.save(png_bytes, "x.png")

    def test_unwritable_directory(self, tmp_path: Path, png_bytes: bytes) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = FigureStore(blocker / "out")

        with pytest.raises(FileOperationError, match="Failed to create directory"):
            store.save(png_bytes, "x.png")
