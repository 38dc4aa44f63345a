"""Argument validation for the ``generate_image`` tool.

The pydantic model is the single source of truth for both validation and the
published JSON input schema. Field names are snake_case; callers use the
camelCase aliases.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError, field_validator

from figforge.errors import InputValidationError
from figforge.formats import EXTENSION_MIME_TYPES
from figforge.providers.image import ASPECT_RATIOS, EDIT_MODES, IMAGE_SIZES
from figforge.qa.checks import FigureStyle

PROMPT_MIN_LENGTH = 1
PROMPT_MAX_LENGTH = 4000
MAX_IMAGE_SIZE = 10 * 1024 * 1024
SUPPORTED_EXTENSIONS: tuple[str, ...] = tuple(EXTENSION_MIME_TYPES)
FIGURE_STYLES: tuple[str, ...] = tuple(style.value for style in FigureStyle)

_BOOL_SUGGESTIONS: dict[str, str] = {
    "blendImages": (
        "Use true or false for blendImages parameter to enable/disable multi-image blending"
    ),
    "maintainCharacterConsistency": (
        "Use true or false for maintainCharacterConsistency parameter "
        "to enable/disable character consistency"
    ),
    "useWorldKnowledge": (
        "Use true or false for useWorldKnowledge parameter "
        "to enable/disable world knowledge integration"
    ),
    "useGoogleSearch": (
        "Use true or false for useGoogleSearch parameter to enable/disable search grounding"
    ),
    "validateQa": "Use true or false for validateQa parameter to enable/disable QA validation",
}


class _InvalidParameter(ValueError):
    """Validator failure carrying the caller-facing suggestion."""

    def __init__(self, message: str, suggestion: str) -> None:
        super().__init__(message)
        self.suggestion = suggestion


def _format_mb(size: int) -> str:
    return f"{size / (1024 * 1024):.1f}"


def _check_choice(value: str | None, choices: tuple[str, ...], label: str, noun: str) -> None:
    if value is not None and value not in choices:
        supported = ", ".join(choices)
        raise _InvalidParameter(
            f"Invalid {label}: {value}. Supported values: {supported}",
            f"Please use one of the supported {noun}: {supported}",
        )


class GenerateImageParams(BaseModel):
    """Arguments of the ``generate_image`` tool."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    prompt: str = Field(
        description=(
            "The prompt for image generation "
            "(English recommended for optimal structured prompt enhancement)"
        ),
    )
    file_name: str | None = Field(
        default=None,
        alias="fileName",
        description=(
            "Optional file name for the generated image "
            "(if not specified, generates an auto-named file in IMAGE_OUTPUT_DIR)"
        ),
    )
    input_image_path: str | None = Field(
        default=None,
        alias="inputImagePath",
        description=(
            "Optional absolute path to source image for image-to-image generation. "
            "Use when generating variations, style transfers, or similar images "
            "based on an existing image"
        ),
    )
    blend_images: StrictBool | None = Field(
        default=None,
        alias="blendImages",
        description=(
            "Enable multi-image blending for combining multiple visual elements naturally. "
            "Use when prompt mentions multiple subjects or composite scenes"
        ),
    )
    maintain_character_consistency: StrictBool | None = Field(
        default=None,
        alias="maintainCharacterConsistency",
        description=(
            "Maintain character appearance consistency. "
            "Enable when generating same character in different poses/scenes"
        ),
    )
    use_world_knowledge: StrictBool | None = Field(
        default=None,
        alias="useWorldKnowledge",
        description=(
            "Use real-world knowledge for accurate context. "
            "Enable for historical figures, landmarks, or factual scenarios"
        ),
    )
    use_google_search: StrictBool | None = Field(
        default=None,
        alias="useGoogleSearch",
        description=(
            "Enable Google Search grounding to access real-time web information for "
            "factually accurate image generation. Leave disabled for creative, fictional, "
            "historical, or timeless content."
        ),
    )
    aspect_ratio: str | None = Field(
        default=None,
        alias="aspectRatio",
        description="Aspect ratio for the generated image",
        json_schema_extra={"enum": list(ASPECT_RATIOS)},
    )
    image_size: str | None = Field(
        default=None,
        alias="imageSize",
        description=(
            'Image resolution for high-quality output. Specify "2K" or "4K" for higher '
            "resolution with better text rendering. Leave unspecified for standard quality."
        ),
        json_schema_extra={"enum": list(IMAGE_SIZES)},
    )
    figure_style: str | None = Field(
        default=None,
        alias="figureStyle",
        description=(
            "Scientific figure style for publication-ready illustrations. "
            '"scientific_diagram" for process/concept diagrams, "scientific_map" for maps '
            'with scale/legend/north arrow, "scientific_chart" for data visualizations.'
        ),
        json_schema_extra={"enum": list(FIGURE_STYLES)},
    )
    edit_mode: str | None = Field(
        default=None,
        alias="editMode",
        description=(
            'Edit mode for image modification. "strict" preserves everything except the '
            'requested change; "creative" allows artistic interpretation. Default is "creative".'
        ),
        json_schema_extra={"enum": list(EDIT_MODES)},
    )
    validate_qa: StrictBool | None = Field(
        default=None,
        alias="validateQa",
        description=(
            "Run QA validation on this generation against publication-quality criteria. "
            "Requires figureStyle to be set."
        ),
    )

    @field_validator("prompt")
    @classmethod
    def _check_prompt(cls, value: str) -> str:
        length = len(value)
        if length < PROMPT_MIN_LENGTH or length > PROMPT_MAX_LENGTH:
            suggestion = (
                "Please provide a descriptive prompt for image generation."
                if length == 0
                else f"Please shorten your prompt by {length - PROMPT_MAX_LENGTH} characters."
            )
            raise _InvalidParameter(
                f"Prompt must be between {PROMPT_MIN_LENGTH} and {PROMPT_MAX_LENGTH} "
                f"characters. Current length: {length}",
                suggestion,
            )
        return value

    @field_validator("input_image_path")
    @classmethod
    def _check_input_image_path(cls, value: str | None) -> str | None:
        if not value:
            return None
        path = Path(value)
        if not path.exists():
            raise _InvalidParameter(
                f"Input image file not found: {value}",
                "Please provide a valid absolute path to an existing image file",
            )
        ext = path.suffix.lower()
        if ext not in SUPPORTED_EXTENSIONS:
            supported = ", ".join(SUPPORTED_EXTENSIONS)
            raise _InvalidParameter(
                f"Unsupported image format: {ext}. Supported formats: {supported}",
                f"Please provide an image with one of these extensions: {supported}",
            )
        size = path.stat().st_size
        if size > MAX_IMAGE_SIZE:
            limit = _format_mb(MAX_IMAGE_SIZE)
            raise _InvalidParameter(
                f"Image size exceeds {limit}MB limit. Current size: {_format_mb(size)}MB",
                f"Please compress your image or reduce its resolution to stay below {limit}MB",
            )
        return value

    @field_validator("aspect_ratio")
    @classmethod
    def _check_aspect_ratio(cls, value: str | None) -> str | None:
        _check_choice(value, ASPECT_RATIOS, "aspect ratio", "aspect ratios")
        return value

    @field_validator("image_size")
    @classmethod
    def _check_image_size(cls, value: str | None) -> str | None:
        _check_choice(value, IMAGE_SIZES, "image size", "image sizes")
        return value

    @field_validator("figure_style")
    @classmethod
    def _check_figure_style(cls, value: str | None) -> str | None:
        _check_choice(value, FIGURE_STYLES, "figure style", "figure styles")
        return value

    @field_validator("edit_mode")
    @classmethod
    def _check_edit_mode(cls, value: str | None) -> str | None:
        _check_choice(value, EDIT_MODES, "edit mode", "edit modes")
        return value


def _to_input_error(error: ValidationError) -> InputValidationError:
    """Convert the first pydantic error into an InputValidationError."""
    first = error.errors()[0]
    cause = first.get("ctx", {}).get("error")
    if isinstance(cause, _InvalidParameter):
        return InputValidationError(str(cause), cause.suggestion)

    name = str(first["loc"][0]) if first["loc"] else "arguments"
    if first["type"] == "missing":
        return InputValidationError(
            f"Missing required parameter: {name}",
            "Please provide a descriptive prompt for image generation.",
        )
    if first["type"].startswith("bool"):
        return InputValidationError(
            f"{name} must be a boolean value",
            _BOOL_SUGGESTIONS.get(name, f"Use true or false for {name}"),
        )
    return InputValidationError(
        f"Invalid value for {name}: {first['msg']}",
        "Check the generate_image input schema for accepted values",
    )


def validate_generate_image_params(arguments: Any) -> GenerateImageParams:
    """Validate raw tool arguments.

    Returns:
        The validated parameters.

    Raises:
        InputValidationError: Describing the first problem found.
    """
    if not isinstance(arguments, Mapping):
        raise InputValidationError(
            "Tool arguments must be an object",
            "Pass the generate_image arguments as a JSON object",
        )
    try:
        return GenerateImageParams.model_validate(dict(arguments))
    except ValidationError as e:
        raise _to_input_error(e) from e


def tool_input_schema() -> dict[str, Any]:
    """JSON schema of the tool arguments, keyed by the camelCase aliases."""
    schema = GenerateImageParams.model_json_schema(by_alias=True)
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    return schema
