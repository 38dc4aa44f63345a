"""QA report model.

``hard_fail_count``, ``passed``, ``score`` and ``status`` are computed from
``checks`` on access and never stored, so they cannot drift apart.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any, Literal

from figforge.qa.checks import CheckStatus, FigureStyle, QaCheckDefinition, Severity

QaStatus = Literal["passed", "failed", "unavailable"]

SKIPPED_DETAIL = "QA evaluation could not be completed"


@dataclass(frozen=True)
class QaCheck:
    """One check as judged in one evaluation."""

    id: str
    name: str
    severity: Severity
    status: CheckStatus
    detail: str | None = None

    @property
    def is_hard_fail(self) -> bool:
        return self.severity == Severity.HARD and self.status == CheckStatus.FAIL

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "severity": str(self.severity),
            "status": str(self.status),
        }
        if self.detail is not None:
            data["detail"] = self.detail
        return data


@dataclass(frozen=True)
class QaReport:
    """Result of one QA evaluation of one generated figure.

    Attributes:
        checks: One entry per effective check definition, in table order.
        figure_style: Style whose check set was evaluated.
        attempts: 1-indexed generation attempt this report belongs to.
        evaluation_time_ms: Wall time spent in the evaluator.
    """

    checks: tuple[QaCheck, ...]
    figure_style: FigureStyle
    attempts: int = 1
    evaluation_time_ms: int = 0

    @property
    def hard_fail_count(self) -> int:
        return sum(1 for c in self.checks if c.is_hard_fail)

    @property
    def passed(self) -> bool:
        """True iff no hard check failed; soft outcomes and score never matter."""
        return self.hard_fail_count == 0

    @property
    def score(self) -> float:
        """Share of evaluated checks that passed, rounded to 2 decimals.

        Skipped checks are excluded from both sides; 0.0 when nothing was evaluated.
        """
        evaluated = [c for c in self.checks if c.status != CheckStatus.SKIPPED]
        if not evaluated:
            return 0.0
        passed = sum(1 for c in evaluated if c.status == CheckStatus.PASS)
        return round(passed / len(evaluated), 2)

    @property
    def unavailable(self) -> bool:
        """True when no check could be evaluated (evaluator outage or garbage reply)."""
        return bool(self.checks) and all(c.status == CheckStatus.SKIPPED for c in self.checks)

    @property
    def status(self) -> QaStatus:
        if self.unavailable:
            return "unavailable"
        return "passed" if self.passed else "failed"

    @property
    def hard_failures(self) -> list[QaCheck]:
        return [c for c in self.checks if c.is_hard_fail]

    def with_timing(self, *, attempts: int, evaluation_time_ms: int) -> QaReport:
        """Return a copy stamped with the attempt number and evaluation time."""
        return replace(self, attempts=attempts, evaluation_time_ms=evaluation_time_ms)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the response envelope (camelCase keys)."""
        return {
            "passed": self.passed,
            "status": self.status,
            "score": self.score,
            "hardFailCount": self.hard_fail_count,
            "checks": [c.to_dict() for c in self.checks],
            "attempts": self.attempts,
            "figureStyle": self.figure_style.value,
            "evaluationTimeMs": self.evaluation_time_ms,
        }


def build_report(checks: Iterable[QaCheck], figure_style: FigureStyle | str) -> QaReport:
    return QaReport(checks=tuple(checks), figure_style=FigureStyle(figure_style))


def build_skipped_report(
    figure_style: FigureStyle | str,
    definitions: Iterable[QaCheckDefinition],
    detail: str = SKIPPED_DETAIL,
) -> QaReport:
    """Report with every check ``skipped``: passes, scores 0, status ``unavailable``."""
    return build_report(
        (
            QaCheck(
                id=d.id,
                name=d.name,
                severity=d.severity,
                status=CheckStatus.SKIPPED,
                detail=detail,
            )
            for d in definitions
        ),
        figure_style,
    )
