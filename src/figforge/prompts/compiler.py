"""Prompt compiler: ``{{ variable }}`` substitution over YAML templates."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from figforge.prompts.loader import (
    DEFAULT_PROMPTS_PATH,
    PromptLoader,
    TemplateNotFoundError,
    TemplateParseError,
)


@dataclass
class CompiledPrompt:
    """A compiled prompt ready for submission to the text backend."""

    system: str
    user: str
    template_name: str


class PromptCompileError(Exception):
    """Raised when prompt compilation fails."""

    def __init__(self, template_name: str, message: str) -> None:
        self.template_name = template_name
        super().__init__(f"Failed to compile template '{template_name}': {message}")


class PromptCompiler:
    """Compile prompts from templates with variable substitution.

    Substitution is a single regex pass: values inserted into a template are
    never themselves scanned for placeholders, so user text containing
    ``{{ ... }}`` is passed through verbatim. Unresolved placeholders are
    left as-is.

    Attributes:
        prompts_path: Path to the prompts directory.
    """

    _VAR_PATTERN = re.compile(r"\{\{\s*(\w+(?:\.\w+)*)\s*\}\}")

    def __init__(self, prompts_path: Path = DEFAULT_PROMPTS_PATH) -> None:
        self.prompts_path = prompts_path
        self._loader = PromptLoader(prompts_path)

    def _resolve_variable(self, path: str, context: dict[str, Any]) -> str:
        """Resolve a dotted variable path from context.

        Raises:
            KeyError: If the path cannot be resolved.
        """
        parts = path.split(".")
        value: Any = context

        for part in parts:
            if isinstance(value, dict):
                if part not in value:
                    raise KeyError(f"Key '{part}' not found in context path '{path}'")
                value = value[part]
            elif hasattr(value, part):
                value = getattr(value, part)
            else:
                raise KeyError(f"Cannot resolve '{part}' in context path '{path}'")

        if isinstance(value, (list, dict)):
            return json.dumps(value, indent=2, ensure_ascii=False)
        return str(value)

    def render(self, text: str, context: dict[str, Any]) -> str:
        """Substitute ``{{ variable }}`` placeholders in arbitrary text."""

        def replace_match(match: re.Match[str]) -> str:
            try:
                return self._resolve_variable(match.group(1), context)
            except KeyError:
                return match.group(0)

        return self._VAR_PATTERN.sub(replace_match, text)

    def _load(self, template_name: str) -> Any:
        try:
            return self._loader.load(template_name)
        except (TemplateNotFoundError, TemplateParseError) as e:
            raise PromptCompileError(template_name, str(e)) from e

    def compile(
        self,
        template_name: str,
        context: dict[str, Any] | None = None,
    ) -> CompiledPrompt:
        """Compile a prompt from a template with context substitution.

        Args:
            template_name: Name of the template (e.g., ``qa_evaluate``).
            context: Context dictionary for variable substitution.

        Returns:
            CompiledPrompt with system and user text.

        Raises:
            PromptCompileError: If the template cannot be loaded.
        """
        context = context or {}
        template = self._load(template_name)
        return CompiledPrompt(
            system=self.render(template.system, context),
            user=self.render(template.user, context),
            template_name=template_name,
        )

    def fragment(
        self,
        template_name: str,
        key: str,
        context: dict[str, Any] | None = None,
        *,
        default: str | None = None,
    ) -> str:
        """Render one named fragment of a template.

        Args:
            template_name: Template holding the fragment.
            key: Fragment name.
            context: Context dictionary for variable substitution.
            default: Returned when the fragment is missing.

        Raises:
            PromptCompileError: If the template is missing, or the fragment
                is missing and no default was given.
        """
        template = self._load(template_name)
        if key not in template.fragments:
            if default is not None:
                return default
            raise PromptCompileError(template_name, f"Unknown fragment '{key}'")
        return self.render(template.fragments[key], context or {})

    def list_templates(self) -> list[str]:
        """List available template names."""
        return self._loader.list_templates()
