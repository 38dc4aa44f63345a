"""FigForge: QA-checked scientific figure generation."""

__version__ = "0.1.0"
