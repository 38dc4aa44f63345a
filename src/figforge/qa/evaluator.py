"""Post-generation QA evaluator for scientific figures.

A multimodal text model looks at the generated image and judges it against
the effective check set for its figure style. The evaluator is advisory:
backend failures and unparseable replies are both classified as
:class:`QaInfrastructureError` at this boundary and end in an all-skipped
report (``status == "unavailable"``) instead of an error.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any

from figforge.observability.logging import get_logger
from figforge.prompts import PromptCompiler
from figforge.providers.base import ProviderError, QaInfrastructureError
from figforge.qa.checks import (
    EVALUATED_STATUSES,
    CheckStatus,
    FigureStyle,
    QaCheckDefinition,
    get_effective_checks,
)
from figforge.qa.report import QaCheck, QaReport, build_report, build_skipped_report

if TYPE_CHECKING:
    from figforge.providers.base import TextProvider

log = get_logger(__name__)

QA_TEMPERATURE = 0.2
QA_MAX_TOKENS = 4096

_TEMPLATE = "qa_evaluate"
_QA_PROVIDER = "qa_evaluator"
_STATUS_VALUES = frozenset(s.value for s in EVALUATED_STATUSES)
_OPEN_FENCE = re.compile(r"```json?\n?")
_CLOSE_FENCE = re.compile(r"```")


def format_check_list(definitions: list[QaCheckDefinition]) -> str:
    """Numbered ``N. [id] (severity): instruction`` lines."""
    return "\n".join(
        f"{i}. [{d.id}] ({d.severity.value}): {d.instruction}"
        for i, d in enumerate(definitions, start=1)
    )


def build_evaluation_prompt(
    figure_style: FigureStyle | str,
    original_prompt: str,
    compiler: PromptCompiler | None = None,
) -> tuple[str, str]:
    """Build the evaluator's system instruction and user turn.

    Returns:
        ``(system_instruction, instruction)``.
    """
    style = FigureStyle(figure_style)
    definitions = get_effective_checks(style)
    compiled = (compiler or PromptCompiler()).compile(
        _TEMPLATE,
        {
            "original_prompt": original_prompt,
            "figure_style": style.value,
            "check_list": format_check_list(definitions),
            "check_count": len(definitions),
        },
    )
    return compiled.system, compiled.user


def strip_code_fences(text: str) -> str:
    """Remove Markdown code fences the model may wrap around JSON."""
    return _CLOSE_FENCE.sub("", _OPEN_FENCE.sub("", text)).strip()


def as_qa_infrastructure_error(error: ProviderError) -> QaInfrastructureError:
    """Reclassify a judge backend failure; the original kind goes in ``details``."""
    if isinstance(error, QaInfrastructureError):
        return error
    failure = QaInfrastructureError(
        error.provider,
        f"QA evaluation backend failed: {error.message}",
        details={**error.details, "cause_kind": error.kind.value},
    )
    failure.__cause__ = error
    return failure


def _log_qa_failure(failure: QaInfrastructureError, style: FigureStyle) -> None:
    log.warning(
        "qa_infrastructure_failure",
        figure_style=style.value,
        kind=failure.kind.value,
        error=failure.message,
        details=failure.details,
    )


def _reply_entries(reply: str) -> list[Any]:
    """The reply's ``checks`` array.

    Raises:
        QaInfrastructureError: If the reply is not JSON or has no ``checks`` array.
    """
    try:
        parsed: Any = json.loads(strip_code_fences(reply))
    except json.JSONDecodeError as e:
        raise QaInfrastructureError(
            _QA_PROVIDER,
            "QA reply is not valid JSON",
            details={"preview": reply[:200]},
        ) from e

    entries = parsed.get("checks") if isinstance(parsed, dict) else None
    if not isinstance(entries, list):
        raise QaInfrastructureError(_QA_PROVIDER, "QA reply has no 'checks' array")
    return entries


def parse_evaluator_reply(
    reply: str,
    figure_style: FigureStyle | str,
    definitions: list[QaCheckDefinition] | None = None,
) -> QaReport:
    """Turn the evaluator's raw reply into a report.

    Every definition yields exactly one check. A definition whose id is
    missing from the reply, or whose status is not pass/fail/warning, is
    ``skipped``. A reply that is not JSON, or has no ``checks`` array,
    yields an all-skipped report.
    """
    style = FigureStyle(figure_style)
    definitions = definitions if definitions is not None else get_effective_checks(style)

    try:
        entries = _reply_entries(reply)
    except QaInfrastructureError as e:
        _log_qa_failure(e, style)
        return build_skipped_report(style, definitions)

    by_id: dict[str, dict[str, Any]] = {}
    for entry in entries:
        if isinstance(entry, dict) and isinstance(entry.get("id"), str):
            by_id.setdefault(entry["id"], entry)

    checks: list[QaCheck] = []
    for definition in definitions:
        found = by_id.get(definition.id, {})
        raw_status = found.get("status")
        # Models occasionally answer with a list or object here
        status = (
            CheckStatus(raw_status)
            if isinstance(raw_status, str) and raw_status in _STATUS_VALUES
            else CheckStatus.SKIPPED
        )
        detail = found.get("detail")
        checks.append(
            QaCheck(
                id=definition.id,
                name=definition.name,
                severity=definition.severity,
                status=status,
                detail=detail if isinstance(detail, str) else None,
            )
        )

    return build_report(checks, style)


class QaEvaluator:
    """Score a generated figure against its style's QA checklist.

    Args:
        text_provider: Multimodal text backend used as the judge.
        compiler: Prompt compiler (defaults to the packaged templates).
    """

    def __init__(
        self,
        text_provider: TextProvider,
        compiler: PromptCompiler | None = None,
    ) -> None:
        self._text = text_provider
        self._compiler = compiler or PromptCompiler()

    async def validate(
        self,
        image_data: bytes,
        figure_style: FigureStyle | str,
        original_prompt: str,
        mime_type: str = "image/png",
    ) -> QaReport:
        """Evaluate one image.

        Never raises ``ProviderError``: a backend failure is logged as
        ``qa_infrastructure`` and yields an all-skipped report.
        """
        style = FigureStyle(figure_style)
        definitions = get_effective_checks(style)
        system_instruction, instruction = build_evaluation_prompt(
            style, original_prompt, self._compiler
        )

        try:
            reply = await self._text.complete(
                instruction,
                temperature=QA_TEMPERATURE,
                max_tokens=QA_MAX_TOKENS,
                system_instruction=system_instruction,
                input_image=(image_data, mime_type),
            )
        except ProviderError as e:
            _log_qa_failure(as_qa_infrastructure_error(e), style)
            return build_skipped_report(style, definitions)

        report = parse_evaluator_reply(reply, style, definitions)
        log.info(
            "qa_evaluation_complete",
            figure_style=style.value,
            status=report.status,
            passed=report.passed,
            score=report.score,
            hard_fail_count=report.hard_fail_count,
            total_checks=len(report.checks),
        )
        return report
