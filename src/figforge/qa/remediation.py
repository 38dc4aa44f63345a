"""Retry patches built from failed hard checks."""

from __future__ import annotations

from collections.abc import Iterable

from figforge.qa.report import QaCheck, QaReport

PATCH_HEADER = "[MANDATORY CORRECTIONS - QA REMEDIATION]"

REMEDIATION_INSTRUCTIONS: dict[str, str] = {
    "spelling": (
        "CRITICAL FIX: There are spelling errors in the figure. "
        "Double-check and correct ALL text, labels, and annotations."
    ),
    "french_accents": (
        "CRITICAL FIX: French accent marks are missing or incorrect. Ensure all French "
        "text has correct accents: é, è, ê, ë, à, â, ù, û, ô, î, ï, ç."
    ),
    "text_readable": (
        "CRITICAL FIX: Some text is not readable. All text must be clearly visible, "
        "at a sufficient font size, with no overlapping."
    ),
    "clean_background": (
        "CRITICAL FIX: The background must be clean white or neutral. Remove any "
        "gradients, artistic effects, or decorative elements."
    ),
    "contrast": (
        "CRITICAL FIX: Insufficient contrast. Use dark text/lines on a light background "
        "for clear readability."
    ),
    "scale_bar": (
        "MANDATORY ELEMENT MISSING: You MUST include a clearly visible scale bar with "
        "metric units (m or km) in the bottom-left or bottom-right corner."
    ),
    "north_arrow": (
        "MANDATORY ELEMENT MISSING: You MUST include a clearly visible north arrow "
        "(standard cartographic symbol) in the top-right corner."
    ),
    "axis_labels": (
        "MANDATORY ELEMENT MISSING: BOTH x-axis and y-axis MUST have clearly visible labels."
    ),
    "units_present": (
        "MANDATORY ELEMENT MISSING: All axis labels MUST include appropriate SI units in "
        "parentheses (e.g., Temperature (°C), Distance (km))."
    ),
    "legend_if_multiple": (
        "MANDATORY ELEMENT MISSING: You MUST include a legend that explains all data "
        "series, colors, and symbols."
    ),
    "components_labeled": (
        "MANDATORY ELEMENT MISSING: ALL major components and elements in the diagram "
        "MUST be clearly labeled with text annotations."
    ),
}


def _remediation_line(check: QaCheck) -> str:
    instruction = REMEDIATION_INSTRUCTIONS.get(check.id)
    if instruction is None:
        return f'- FIX REQUIRED for "{check.name}": {check.detail or "This element is mandatory."}'
    issue = f" (Issue found: {check.detail})" if check.detail else ""
    return f"- {instruction}{issue}"


def build_retry_patch(checks: Iterable[QaCheck]) -> str:
    """Build the prompt fragment asking the image model to fix hard failures.

    Returns:
        An empty string when no hard check failed, else the patch text
        (starting with a blank line so it can be appended directly).
    """
    hard_failures = [c for c in checks if c.is_hard_fail]
    if not hard_failures:
        return ""

    remediations = "\n".join(_remediation_line(c) for c in hard_failures)
    return (
        f"\n\n{PATCH_HEADER}\n"
        "The previous generation FAILED quality checks. "
        "You MUST address ALL of the following issues:\n"
        f"{remediations}\n\n"
        "These fixes are MANDATORY for publication-quality scientific figures. "
        "Do not omit any of them."
    )


def build_attempt_prompt(structured_prompt: str, latest_report: QaReport | None) -> str:
    """Prompt for the next generation attempt.

    Always derived from the original structured prompt plus the patch for the
    latest report only; earlier patches never accumulate.
    """
    if latest_report is None:
        return structured_prompt
    return structured_prompt + build_retry_patch(latest_report.checks)
