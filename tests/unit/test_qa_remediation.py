"""Tests for retry patch construction."""

from __future__ import annotations

from figforge.qa.checks import CheckStatus, FigureStyle, Severity
from figforge.qa.remediation import (
    PATCH_HEADER,
    REMEDIATION_INSTRUCTIONS,
    build_attempt_prompt,
    build_retry_patch,
)
from figforge.qa.report import QaCheck, build_report


def _fail(check_id: str, detail: str | None = None, name: str | None = None) -> QaCheck:
    return QaCheck(
        id=check_id,
        name=name or check_id,
        severity=Severity.HARD,
        status=CheckStatus.FAIL,
        detail=detail,
    )


class TestBuildRetryPatch:
    def test_empty_for_no_checks(self) -> None:
        assert build_retry_patch([]) == ""

    def test_empty_without_hard_failures(self) -> None:
        checks = [
            QaCheck("gridlines", "Gridlines", Severity.SOFT, CheckStatus.FAIL, "none"),
            QaCheck("spelling", "Spelling", Severity.HARD, CheckStatus.PASS),
            QaCheck("contrast", "Contrast", Severity.HARD, CheckStatus.SKIPPED),
        ]

        assert build_retry_patch(checks) == ""

    def test_known_ids_with_details(self) -> None:
        patch = build_retry_patch(
            [
                _fail("scale_bar", "No scale bar visible"),
                _fail("north_arrow", "North arrow absent"),
            ]
        )

        assert patch.startswith("\n\n" + PATCH_HEADER)
        assert REMEDIATION_INSTRUCTIONS["scale_bar"] in patch
        assert REMEDIATION_INSTRUCTIONS["north_arrow"] in patch
        assert "(Issue found: No scale bar visible)" in patch
        assert "(Issue found: North arrow absent)" in patch

    def test_known_id_without_detail(self) -> None:
        patch = build_retry_patch([_fail("axis_labels")])

        assert f"- {REMEDIATION_INSTRUCTIONS['axis_labels']}\n" in patch
        assert "Issue found" not in patch

    def test_unknown_id_uses_generic_line(self) -> None:
        patch = build_retry_patch(
            [
                _fail("subpanel_labels", "Panels unlabeled", name="Subpanel Labels"),
                _fail("flow_arrows", name="Flow Arrows"),
            ]
        )

        assert '- FIX REQUIRED for "Subpanel Labels": Panels unlabeled' in patch
        assert '- FIX REQUIRED for "Flow Arrows": This element is mandatory.' in patch

    def test_only_hard_failures_listed(self) -> None:
        patch = build_retry_patch(
            [
                _fail("spelling", "Typo in legend"),
                QaCheck("gridlines", "Gridlines", Severity.SOFT, CheckStatus.FAIL, "too dense"),
            ]
        )

        assert "Typo in legend" in patch
        assert "too dense" not in patch


class TestBuildAttemptPrompt:
    def test_first_attempt_is_unchanged(self) -> None:
        assert build_attempt_prompt("base prompt", None) == "base prompt"

    def test_passing_report_adds_nothing(self) -> None:
        report = build_report(
            [QaCheck("spelling", "Spelling", Severity.HARD, CheckStatus.PASS)],
            FigureStyle.MAP,
        )

        assert build_attempt_prompt("base", report) == "base"

    def test_patches_never_accumulate(self) -> None:
        first = build_report([_fail("scale_bar", "missing")], FigureStyle.MAP)
        second = build_report([_fail("north_arrow", "missing")], FigureStyle.MAP)

        prompt_2 = build_attempt_prompt("base", first)
        prompt_3 = build_attempt_prompt("base", second)

        assert prompt_2.startswith("base")
        assert prompt_3.startswith("base")
        assert prompt_3.count(PATCH_HEADER) == 1
        assert REMEDIATION_INSTRUCTIONS["scale_bar"] not in prompt_3
        assert REMEDIATION_INSTRUCTIONS["north_arrow"] in prompt_3
