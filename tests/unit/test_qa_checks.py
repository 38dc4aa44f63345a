"""Tests for the QA check tables."""

from __future__ import annotations

import pytest

from figforge.qa.checks import (
    CHART_CHECKS,
    COMMON_CHECKS,
    DIAGRAM_CHECKS,
    MAP_CHECKS,
    FigureStyle,
    Severity,
    get_effective_checks,
)


class TestEffectiveChecks:
    @pytest.mark.parametrize(
        ("style", "specific"),
        [
            (FigureStyle.MAP, MAP_CHECKS),
            (FigureStyle.CHART, CHART_CHECKS),
            (FigureStyle.DIAGRAM, DIAGRAM_CHECKS),
        ],
    )
    def test_common_checks_come_first(self, style: FigureStyle, specific: tuple) -> None:
        checks = get_effective_checks(style)

        assert checks[: len(COMMON_CHECKS)] == list(COMMON_CHECKS)
        assert checks[len(COMMON_CHECKS) :] == list(specific)

    def test_counts(self) -> None:
        assert len(get_effective_checks("scientific_map")) == 9
        assert len(get_effective_checks("scientific_chart")) == 10
        assert len(get_effective_checks("scientific_diagram")) == 12

    def test_accepts_plain_string(self) -> None:
        assert get_effective_checks("scientific_map") == get_effective_checks(FigureStyle.MAP)

    def test_unknown_style_raises(self) -> None:
        with pytest.raises(ValueError):
            get_effective_checks("watercolor")

    def test_ids_unique_per_style(self) -> None:
        for style in FigureStyle:
            ids = [c.id for c in get_effective_checks(style)]
            assert len(ids) == len(set(ids)), style


class TestSeverities:
    def test_map_mandatory_elements_are_hard(self) -> None:
        by_id = {c.id: c for c in get_effective_checks(FigureStyle.MAP)}

        assert by_id["scale_bar"].severity is Severity.HARD
        assert by_id["north_arrow"].severity is Severity.HARD
        assert by_id["legend_if_needed"].severity is Severity.SOFT

    def test_common_table(self) -> None:
        by_id = {c.id: c.severity for c in COMMON_CHECKS}

        assert by_id == {
            "spelling": Severity.HARD,
            "french_accents": Severity.HARD,
            "text_readable": Severity.HARD,
            "clean_background": Severity.HARD,
            "contrast": Severity.HARD,
            "scientific_terminology": Severity.SOFT,
        }

    def test_chart_gridlines_soft(self) -> None:
        by_id = {c.id: c.severity for c in CHART_CHECKS}

        assert by_id["axis_labels"] is Severity.HARD
        assert by_id["units_present"] is Severity.HARD
        assert by_id["legend_if_multiple"] is Severity.HARD
        assert by_id["gridlines"] is Severity.SOFT

    def test_every_check_has_instruction(self) -> None:
        for style in FigureStyle:
            for check in get_effective_checks(style):
                assert check.instruction.strip()
                assert check.name.strip()
