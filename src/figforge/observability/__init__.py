"""Observability module for FigForge.

Provides structured logging configuration and per-request log context.
"""

from figforge.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
    request_context,
)

__all__ = [
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "get_logs_dir",
    "request_context",
]
