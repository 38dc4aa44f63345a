"""Structured logging configuration for FigForge.

Two sinks are available:
- Console: rich output on stderr, level controlled by -v
- File: every event as a JSON line under ``{log_dir}/logs/debug.jsonl`` (--log)

Events are snake_case names with keyword context, e.g.
``log.info("qa_attempt_result", attempt=2, status="failed")``. Each tool call
runs inside :func:`request_context`, so its ``request_id`` rides along on
every event emitted while it is being served.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - Used at runtime for path operations
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from structlog.typing import EventDict, Processor

_configured = False
_file_handler: logging.FileHandler | None = None
_logs_dir: Path | None = None

LOG_FILE_NAME = "debug.jsonl"

# Event keys whose values must never reach a log sink
_REDACTED_KEYS = frozenset({"api_key", "image_data", "input_image", "inline_data"})
_REDACTED = "[REDACTED]"

# SDK loggers that drown useful events at DEBUG
_NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "urllib3",
    "google_genai",
    "google.auth",
    "langchain",
    "langchain_core",
    "langchain_google_genai",
    "asyncio",
)

_VERBOSITY_LEVELS = {0: logging.WARNING, 1: logging.INFO}


class JSONLFileHandler(logging.FileHandler):
    """File handler that writes one JSON object per record."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry: dict[str, Any] = {
                "timestamp": datetime.now(UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
            }
            # structlog hands the event dict over as record.msg via wrap_for_formatter
            if isinstance(record.msg, dict):
                event_dict = {
                    k: v for k, v in record.msg.items() if k not in ("level", "timestamp")
                }
                entry["message"] = event_dict.pop("event", "")
                entry.update(event_dict)
            else:
                entry["message"] = record.getMessage()

            if self.stream:
                self.stream.write(json.dumps(entry, default=str) + "\n")
                self.stream.flush()
        except Exception:
            self.handleError(record)


def _redact_secrets(_logger: object, _method: str, event_dict: EventDict) -> EventDict:
    """Replace API keys and raw image payloads with a marker."""
    for key in _REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = _REDACTED
    return event_dict


def _console_handler(verbosity: int) -> RichHandler:
    return RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 2,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        markup=False,
        level=_VERBOSITY_LEVELS.get(verbosity, logging.DEBUG),
    )


def _open_file_handler(log_dir: Path) -> JSONLFileHandler:
    global _file_handler, _logs_dir

    _logs_dir = log_dir / "logs"
    _logs_dir.mkdir(parents=True, exist_ok=True)
    _file_handler = JSONLFileHandler(str(_logs_dir / LOG_FILE_NAME), mode="a")
    _file_handler.setLevel(logging.DEBUG)
    return _file_handler


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_dir: Path | None = None,
) -> None:
    """Configure logging for FigForge.

    Safe to call repeatedly; the CLI calls it once for the console and again
    once the output directory (and so the log directory) is known.

    Args:
        verbosity: 0=WARNING (default), 1=INFO, 2+=DEBUG
        log_to_file: If True, enable JSONL file logging under ``log_dir/logs``.
        log_dir: Base directory for file logging. Required if log_to_file=True.

    Raises:
        ValueError: If log_to_file=True but log_dir is not provided.
    """
    global _configured

    if log_to_file and log_dir is None:
        raise ValueError("log_dir is required when log_to_file=True")

    close_file_logging()

    handlers: list[logging.Handler] = [_console_handler(verbosity)]
    if log_to_file and log_dir is not None:
        handlers.append(_open_file_handler(log_dir))

    # The console handler filters by verbosity; the root stays open for the file sink
    root_level = logging.DEBUG if (verbosity > 0 or log_to_file) else logging.WARNING
    logging.basicConfig(level=root_level, format="%(message)s", handlers=handlers, force=True)

    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_secrets,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structured logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()

    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


@contextmanager
def request_context(**context: Any) -> Iterator[str]:
    """Bind a fresh ``request_id`` (plus ``context``) to every event in the block.

    Yields:
        The request id.
    """
    request_id = uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(request_id=request_id, **context):
        yield request_id


def get_logs_dir() -> Path | None:
    """Return the logs directory if file logging is enabled."""
    return _logs_dir


def close_file_logging() -> None:
    """Close the JSONL file handler, if one is open."""
    global _file_handler
    if _file_handler is not None:
        _file_handler.close()
        _file_handler = None
