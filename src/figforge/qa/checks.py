"""QA check definitions for scientific figures.

Checks come in two tiers: ``COMMON_CHECKS`` apply to every figure style,
and each style adds its own table. Tables are static and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class FigureStyle(StrEnum):
    """Closed set of scientific figure styles."""

    DIAGRAM = "scientific_diagram"
    MAP = "scientific_map"
    CHART = "scientific_chart"


class Severity(StrEnum):
    """Hard checks block a pass and drive retries; soft checks are advisory."""

    HARD = "hard"
    SOFT = "soft"


class CheckStatus(StrEnum):
    """Outcome of one check in one evaluation."""

    PASS = "pass"
    FAIL = "fail"
    WARNING = "warning"
    SKIPPED = "skipped"


# Statuses an evaluator reply may legitimately carry
EVALUATED_STATUSES = frozenset({CheckStatus.PASS, CheckStatus.FAIL, CheckStatus.WARNING})


@dataclass(frozen=True)
class QaCheckDefinition:
    """A single criterion the evaluator is asked to judge."""

    id: str
    name: str
    severity: Severity
    instruction: str


COMMON_CHECKS: tuple[QaCheckDefinition, ...] = (
    QaCheckDefinition(
        id="spelling",
        name="Spelling Accuracy",
        severity=Severity.HARD,
        instruction=(
            "Are there any spelling errors in ANY visible text, labels, or annotations? "
            "Check every single word carefully."
        ),
    ),
    QaCheckDefinition(
        id="french_accents",
        name="French Accent Marks",
        severity=Severity.HARD,
        instruction=(
            "If the figure contains French text, are all accent marks correct? "
            "Check for é, è, ê, ë, à, â, ù, û, ô, î, ï, ç, and other diacritics. "
            "Missing or incorrect accents count as failures."
        ),
    ),
    QaCheckDefinition(
        id="text_readable",
        name="Text Readability",
        severity=Severity.HARD,
        instruction=(
            "Is ALL text visible, legible, and at a sufficient font size for publication? "
            "No text should overlap other text or elements."
        ),
    ),
    QaCheckDefinition(
        id="clean_background",
        name="Clean Background",
        severity=Severity.HARD,
        instruction=(
            "Is the background clean white or neutral? There should be no distracting "
            "gradients, artistic effects, or decorative elements."
        ),
    ),
    QaCheckDefinition(
        id="contrast",
        name="Sufficient Contrast",
        severity=Severity.HARD,
        instruction=(
            "Is there sufficient contrast between text/lines and the background for clear "
            "readability? Dark text/lines on light background."
        ),
    ),
    QaCheckDefinition(
        id="scientific_terminology",
        name="Scientific Terminology",
        severity=Severity.SOFT,
        instruction=(
            "Is the scientific terminology used correctly and consistently throughout the figure?"
        ),
    ),
)

MAP_CHECKS: tuple[QaCheckDefinition, ...] = (
    QaCheckDefinition(
        id="scale_bar",
        name="Scale Bar Present",
        severity=Severity.HARD,
        instruction="Is there a clearly visible scale bar with metric units (m or km)?",
    ),
    QaCheckDefinition(
        id="north_arrow",
        name="North Arrow Present",
        severity=Severity.HARD,
        instruction="Is there a clearly visible north arrow or compass indicator?",
    ),
    QaCheckDefinition(
        id="legend_if_needed",
        name="Legend If Needed",
        severity=Severity.SOFT,
        instruction=(
            "If there are color-coded regions, symbols, or multiple data layers, "
            "is there a legend explaining them?"
        ),
    ),
)

CHART_CHECKS: tuple[QaCheckDefinition, ...] = (
    QaCheckDefinition(
        id="axis_labels",
        name="Axis Labels",
        severity=Severity.HARD,
        instruction="Are BOTH x-axis and y-axis clearly labeled?",
    ),
    QaCheckDefinition(
        id="units_present",
        name="Units Present",
        severity=Severity.HARD,
        instruction=(
            "Do axis labels include appropriate SI units (e.g., °C, m, km, W/m², years)?"
        ),
    ),
    QaCheckDefinition(
        id="legend_if_multiple",
        name="Legend for Multiple Series",
        severity=Severity.HARD,
        instruction="If there are multiple data series, lines, or bars, is there a legend?",
    ),
    QaCheckDefinition(
        id="gridlines",
        name="Grid Lines",
        severity=Severity.SOFT,
        instruction="Are grid lines present if they would help reading values from the chart?",
    ),
)

DIAGRAM_CHECKS: tuple[QaCheckDefinition, ...] = (
    QaCheckDefinition(
        id="components_labeled",
        name="Components Labeled",
        severity=Severity.HARD,
        instruction=(
            "Are all major components and elements in the diagram clearly labeled "
            "with text annotations?"
        ),
    ),
    QaCheckDefinition(
        id="visual_style_consistency",
        name="Visual Style Consistency",
        severity=Severity.HARD,
        instruction=(
            "Is the visual style homogeneous throughout the diagram? There should be no "
            "mixing of flat 2D and semi-realistic 3D elements, no mixing of icon styles, "
            "and no inconsistent rendering approaches within the same figure."
        ),
    ),
    QaCheckDefinition(
        id="subpanel_labels",
        name="Sub-panel Labels",
        severity=Severity.HARD,
        instruction=(
            "If the figure contains multiple sub-panels or sections, are they clearly "
            "labeled with lowercase letters (a, b, c, d) or numbers following journal "
            "conventions? Single-panel figures pass this check automatically."
        ),
    ),
    QaCheckDefinition(
        id="color_palette_coherent",
        name="Coherent Color Palette",
        severity=Severity.HARD,
        instruction=(
            "Is the color palette coherent and unified across the entire diagram? Colors "
            "should follow a consistent scheme (e.g., blues for water/ice, greens for "
            "vegetation, reds for heat/danger). Random or clashing colors are a failure."
        ),
    ),
    QaCheckDefinition(
        id="flow_arrows",
        name="Flow Arrows",
        severity=Severity.SOFT,
        instruction=(
            "If this is a process diagram, are arrows and flow direction clear and unambiguous?"
        ),
    ),
    QaCheckDefinition(
        id="consistent_lineweight",
        name="Consistent Line Weight",
        severity=Severity.SOFT,
        instruction="Are line weights consistent and professional throughout the diagram?",
    ),
)

STYLE_CHECKS: dict[FigureStyle, tuple[QaCheckDefinition, ...]] = {
    FigureStyle.MAP: MAP_CHECKS,
    FigureStyle.CHART: CHART_CHECKS,
    FigureStyle.DIAGRAM: DIAGRAM_CHECKS,
}


def get_effective_checks(figure_style: FigureStyle | str) -> list[QaCheckDefinition]:
    """Return the common checks followed by the style's own checks.

    Args:
        figure_style: A :class:`FigureStyle` or its string value.

    Raises:
        ValueError: If the style is unknown.
    """
    style = FigureStyle(figure_style)
    return [*COMMON_CHECKS, *STYLE_CHECKS[style]]
