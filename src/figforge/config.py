"""Settings loading.

Resolution order for every setting, highest first:

1. Environment variable (e.g., ``SCIENTIFIC_QA_ENABLED``)
2. ``figforge.yaml`` in the working directory (or an explicit path)
3. Built-in default

Example ``figforge.yaml``::

    output_dir: ./figures
    api_timeout: 90
    skip_prompt_enhancement: false
    qa:
      enabled: true
      max_retries: 2
      model: gemini-3.1-pro-preview
    providers:
      image: gemini/gemini-3-pro-image-preview
      text: google/gemini-2.0-flash
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

from figforge.errors import ConfigError
from figforge.observability.logging import get_logger

log = get_logger(__name__)

CONFIG_FILE_NAME = "figforge.yaml"

DEFAULT_OUTPUT_DIR = "./output"
DEFAULT_API_TIMEOUT = 60.0
DEFAULT_QA_MAX_RETRIES = 1
DEFAULT_QA_MODEL = "gemini-3.1-pro-preview"
DEFAULT_IMAGE_PROVIDER = "gemini/gemini-3-pro-image-preview"
DEFAULT_TEXT_PROVIDER = "google/gemini-2.0-flash"

# Text provider value that disables the text backend (no enrichment, no QA)
TEXT_PROVIDER_NONE = "none"

_MIN_API_KEY_LENGTH = 10
_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})


@dataclass
class Settings:
    """Runtime settings for FigForge.

    Attributes:
        gemini_api_key: Key for the Gemini backends.
        output_dir: Directory receiving generated figures.
        api_timeout: Per-call backend timeout in seconds.
        skip_prompt_enhancement: Send user prompts to the image model verbatim.
        qa_enabled: Run QA for every request that names a figure style.
        qa_max_retries: Extra generation attempts after a failed QA evaluation.
        qa_model: Model used as the QA judge.
        image_provider: Image provider spec (``gemini/<model>`` or ``placeholder``).
        text_provider: Text provider spec (``google/<model>`` or ``none``).
    """

    gemini_api_key: str = field(default="", repr=False)
    output_dir: Path = field(default_factory=lambda: Path(DEFAULT_OUTPUT_DIR))
    api_timeout: float = DEFAULT_API_TIMEOUT
    skip_prompt_enhancement: bool = False
    qa_enabled: bool = False
    qa_max_retries: int = DEFAULT_QA_MAX_RETRIES
    qa_model: str = DEFAULT_QA_MODEL
    image_provider: str = DEFAULT_IMAGE_PROVIDER
    text_provider: str = DEFAULT_TEXT_PROVIDER

    @property
    def text_enabled(self) -> bool:
        return self.text_provider.lower() != TEXT_PROVIDER_NONE

    @property
    def requires_api_key(self) -> bool:
        """True unless every configured backend runs offline."""
        return self.text_enabled or not self.image_provider.lower().startswith("placeholder")

    def validate(self) -> Settings:
        """Check invariants; returns self for chaining.

        Raises:
            ConfigError: If any value is invalid.
        """
        if self.requires_api_key:
            if not self.gemini_api_key.strip():
                raise ConfigError(
                    "GEMINI_API_KEY is required but not provided",
                    "Set GEMINI_API_KEY environment variable with your Google AI API key",
                )
            if len(self.gemini_api_key) < _MIN_API_KEY_LENGTH:
                raise ConfigError(
                    "GEMINI_API_KEY appears to be invalid - must be at least 10 characters",
                    "Set the GEMINI_API_KEY environment variable to your valid Google AI API key",
                )
        if self.api_timeout <= 0:
            raise ConfigError(
                "API timeout must be a positive number",
                "Set FIGFORGE_API_TIMEOUT to a positive number of seconds (e.g., 60)",
            )
        if not str(self.output_dir).strip():
            raise ConfigError(
                "IMAGE_OUTPUT_DIR cannot be empty",
                "Set IMAGE_OUTPUT_DIR to a valid directory path",
            )
        if self.qa_max_retries < 0:
            raise ConfigError(
                "SCIENTIFIC_QA_MAX_RETRIES must be zero or greater",
                "Set SCIENTIFIC_QA_MAX_RETRIES to 0, 1, 2, ...",
            )
        return self


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _parse_retries(value: Any) -> int:
    """Parse a retry count; garbage falls back to the default, negatives clamp to 0."""
    try:
        retries = int(str(value).strip())
    except ValueError:
        log.warning("config_invalid_qa_max_retries", value=str(value))
        return DEFAULT_QA_MAX_RETRIES
    return max(0, retries)


def _parse_timeout(value: Any) -> float:
    try:
        return float(str(value).strip())
    except ValueError as e:
        raise ConfigError(
            f"API timeout must be a number, got {value!r}",
            "Set FIGFORGE_API_TIMEOUT to a positive number of seconds (e.g., 60)",
        ) from e


def _read_config_file(path: Path) -> dict[str, Any]:
    """Flatten ``figforge.yaml`` into Settings field names.

    Raises:
        ConfigError: If the file exists but cannot be parsed.
    """
    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except Exception as e:
        raise ConfigError(
            f"Failed to load config at {path}: {e}",
            f"Fix the YAML syntax in {path}",
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Failed to load config at {path}: top level must be a mapping",
            f"Fix the YAML structure in {path}",
        )

    qa = data.get("qa") or {}
    providers = data.get("providers") or {}
    flat: dict[str, Any] = {
        "gemini_api_key": data.get("gemini_api_key"),
        "output_dir": data.get("output_dir"),
        "api_timeout": data.get("api_timeout"),
        "skip_prompt_enhancement": data.get("skip_prompt_enhancement"),
        "qa_enabled": qa.get("enabled"),
        "qa_max_retries": qa.get("max_retries"),
        "qa_model": qa.get("model"),
        "image_provider": providers.get("image"),
        "text_provider": providers.get("text"),
    }
    return {k: v for k, v in flat.items() if v is not None}


_ENV_VARS: dict[str, str] = {
    "gemini_api_key": "GEMINI_API_KEY",
    "output_dir": "IMAGE_OUTPUT_DIR",
    "api_timeout": "FIGFORGE_API_TIMEOUT",
    "skip_prompt_enhancement": "SKIP_PROMPT_ENHANCEMENT",
    "qa_enabled": "SCIENTIFIC_QA_ENABLED",
    "qa_max_retries": "SCIENTIFIC_QA_MAX_RETRIES",
    "qa_model": "SCIENTIFIC_QA_MODEL",
    "image_provider": "FIGFORGE_IMAGE_PROVIDER",
    "text_provider": "FIGFORGE_TEXT_PROVIDER",
}


def load_settings(config_path: Path | None = None, **overrides: Any) -> Settings:
    """Load and validate settings.

    Args:
        config_path: Explicit YAML file. Defaults to ``./figforge.yaml`` if present.
        **overrides: Values that beat every other source (CLI flags).
            ``None`` values are ignored.

    Returns:
        Validated Settings.

    Raises:
        ConfigError: If a file is unreadable or a value is invalid.
    """
    path = config_path or Path.cwd() / CONFIG_FILE_NAME
    raw: dict[str, Any] = {}
    if path.exists():
        raw.update(_read_config_file(path))
    elif config_path is not None:
        raise ConfigError(f"Config file not found: {config_path}", "Check the --config path")

    for name, env_var in _ENV_VARS.items():
        value = os.getenv(env_var)
        if value is not None and value != "":
            raw[name] = value

    raw.update({k: v for k, v in overrides.items() if v is not None})

    settings = Settings()
    if "gemini_api_key" in raw:
        settings.gemini_api_key = str(raw["gemini_api_key"])
    if "output_dir" in raw:
        settings.output_dir = Path(str(raw["output_dir"]))
    if "api_timeout" in raw:
        settings.api_timeout = _parse_timeout(raw["api_timeout"])
    if "skip_prompt_enhancement" in raw:
        settings.skip_prompt_enhancement = _parse_bool(raw["skip_prompt_enhancement"])
    if "qa_enabled" in raw:
        settings.qa_enabled = _parse_bool(raw["qa_enabled"])
    if "qa_max_retries" in raw:
        settings.qa_max_retries = _parse_retries(raw["qa_max_retries"])
    if "qa_model" in raw:
        settings.qa_model = str(raw["qa_model"])
    if "image_provider" in raw:
        settings.image_provider = str(raw["image_provider"])
    if "text_provider" in raw:
        settings.text_provider = str(raw["text_provider"])

    return settings.validate()
