"""Tool response envelopes.

Successful generations are returned as a file resource reference, never as
inline base64, so responses stay small regardless of image size.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from figforge.errors import FigForgeError
from figforge.formats import DEFAULT_MIME_TYPE, mime_type_for_path
from figforge.providers.base import ProviderError

if TYPE_CHECKING:
    from figforge.providers.image import ImageResult
    from figforge.qa.report import QaReport

CONTEXT_METHOD = "structured_prompt"
UNKNOWN_ERROR_CODE = "UNKNOWN_ERROR"
DEFAULT_ERROR_SUGGESTION = "Please try again or contact support if the problem persists"


def _text_content(payload: dict[str, Any]) -> list[dict[str, str]]:
    return [{"type": "text", "text": json.dumps(payload)}]


def build_success_response(
    result: ImageResult,
    file_path: Path,
    *,
    processing_time_ms: int = 0,
    figure_style: str | None = None,
    qa_report: QaReport | None = None,
) -> dict[str, Any]:
    """Describe a saved figure as a ``resource`` structured content block."""
    metadata: dict[str, Any] = {
        "model": result.model,
        "processingTime": processing_time_ms,
        "contextMethod": CONTEXT_METHOD,
        "timestamp": result.created_at.isoformat(),
    }
    if figure_style:
        metadata["figureStyle"] = figure_style
    if qa_report is not None:
        metadata["qa"] = qa_report.to_dict()

    structured = {
        "type": "resource",
        "resource": {
            "uri": file_path.resolve().as_uri(),
            "name": file_path.name,
            "mimeType": mime_type_for_path(file_path) or DEFAULT_MIME_TYPE,
        },
        "metadata": metadata,
    }
    return {
        "content": _text_content(structured),
        "structuredContent": structured,
        "isError": False,
    }


def error_to_structured(error: BaseException) -> dict[str, Any]:
    """``{code, message, suggestion, timestamp}`` for any exception."""
    if isinstance(error, FigForgeError | ProviderError):
        return error.to_structured()
    return {
        "code": UNKNOWN_ERROR_CODE,
        "message": str(error) or "An unknown error occurred",
        "suggestion": DEFAULT_ERROR_SUGGESTION,
        "timestamp": datetime.now(UTC).isoformat(),
    }


def build_error_response(error: BaseException) -> dict[str, Any]:
    """Wrap an exception in the ``{"error": {...}}`` envelope."""
    payload = {"error": error_to_structured(error)}
    return {
        "content": _text_content(payload),
        "structuredContent": payload,
        "isError": True,
    }
