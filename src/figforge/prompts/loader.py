"""YAML template files for the prompt compiler.

A template file carries a ``system`` text, a ``user`` text and an optional
``fragments`` mapping of named snippets that callers splice in (editing
notes, per-style descriptions, feature requirements)::

    name: enrich_scientific
    system: |-
      You are ...
    user: |-
      REQUEST: "{{ user_prompt }}"
    fragments:
      edit_note_strict: |-
        ...
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

# Templates ship inside the package
DEFAULT_PROMPTS_PATH = Path(__file__).parent

TEMPLATE_SUFFIX = ".yaml"


@dataclass(frozen=True)
class PromptTemplate:
    """A loaded prompt template.

    Attributes:
        name: Template name.
        description: Free-text description.
        system: System instruction text.
        user: User-turn text.
        fragments: Named snippets spliced into ``system``/``user`` by callers.
    """

    name: str
    description: str = ""
    system: str = ""
    user: str = ""
    fragments: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], name: str) -> PromptTemplate:
        """Build a template from parsed YAML; missing sections default to empty.

        Fragment values are coerced to strings so numbers and booleans in
        YAML do not leak through as other types.
        """
        fragments = data.get("fragments") or {}
        return cls(
            name=str(data.get("name") or name),
            description=str(data.get("description") or ""),
            system=str(data.get("system") or ""),
            user=str(data.get("user") or ""),
            fragments={str(key): str(value) for key, value in dict(fragments).items()},
        )


class TemplateNotFoundError(Exception):
    """Raised when a template file cannot be found."""

    def __init__(self, template_name: str, path: Path) -> None:
        self.template_name = template_name
        self.path = path
        super().__init__(f"Template not found: {template_name} at {path}")


class TemplateParseError(Exception):
    """Raised when a template file is empty, malformed or mis-shaped."""

    def __init__(self, template_name: str, reason: str) -> None:
        self.template_name = template_name
        self.reason = reason
        super().__init__(f"Failed to parse template '{template_name}': {reason}")


class PromptLoader:
    """Read and cache templates from ``<prompts_path>/templates/*.yaml``.

    Attributes:
        prompts_path: Path to the prompts directory.
        templates_path: Directory holding the YAML files.
    """

    def __init__(self, prompts_path: Path = DEFAULT_PROMPTS_PATH) -> None:
        self.prompts_path = prompts_path
        self.templates_path = prompts_path / "templates"
        self._yaml = YAML(typ="safe")
        self._cache: dict[str, PromptTemplate] = {}

    def path_for(self, template_name: str) -> Path:
        return self.templates_path / f"{template_name}{TEMPLATE_SUFFIX}"

    def _read(self, template_name: str, path: Path) -> Mapping[str, Any]:
        try:
            with path.open("r", encoding="utf-8") as f:
                data = self._yaml.load(f)
        except (OSError, YAMLError) as e:
            raise TemplateParseError(template_name, str(e)) from e

        if data is None:
            raise TemplateParseError(template_name, "Empty file")
        if not isinstance(data, Mapping):
            raise TemplateParseError(template_name, "top level must be a mapping")
        fragments = data.get("fragments")
        if fragments is not None and not isinstance(fragments, Mapping):
            raise TemplateParseError(template_name, "'fragments' must be a mapping")
        return data

    def load(self, template_name: str) -> PromptTemplate:
        """Load a template by name (file stem), from cache when possible.

        Raises:
            TemplateNotFoundError: If the template file doesn't exist.
            TemplateParseError: If the template cannot be parsed.
        """
        cached = self._cache.get(template_name)
        if cached is not None:
            return cached

        path = self.path_for(template_name)
        if not path.is_file():
            raise TemplateNotFoundError(template_name, path)

        template = PromptTemplate.from_dict(self._read(template_name, path), template_name)
        self._cache[template_name] = template
        return template

    def exists(self, template_name: str) -> bool:
        return self.path_for(template_name).is_file()

    def list_templates(self) -> list[str]:
        """Sorted template names available on disk."""
        if not self.templates_path.is_dir():
            return []
        files = self.templates_path.glob(f"*{TEMPLATE_SUFFIX}")
        return sorted(p.stem for p in files if p.is_file())

    def clear_cache(self) -> None:
        self._cache.clear()
