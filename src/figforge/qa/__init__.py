"""Scientific figure quality assurance."""

from figforge.qa.checks import (
    CHART_CHECKS,
    COMMON_CHECKS,
    DIAGRAM_CHECKS,
    MAP_CHECKS,
    CheckStatus,
    FigureStyle,
    QaCheckDefinition,
    Severity,
    get_effective_checks,
)
from figforge.qa.evaluator import QaEvaluator, build_evaluation_prompt, parse_evaluator_reply
from figforge.qa.remediation import build_attempt_prompt, build_retry_patch
from figforge.qa.report import QaCheck, QaReport, build_skipped_report

__all__ = [
    "CHART_CHECKS",
    "COMMON_CHECKS",
    "DIAGRAM_CHECKS",
    "MAP_CHECKS",
    "CheckStatus",
    "FigureStyle",
    "QaCheck",
    "QaCheckDefinition",
    "QaEvaluator",
    "QaReport",
    "Severity",
    "build_attempt_prompt",
    "build_evaluation_prompt",
    "build_retry_patch",
    "build_skipped_report",
    "get_effective_checks",
    "parse_evaluator_reply",
]
