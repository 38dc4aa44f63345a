"""Prompt compiler and template loading."""

from figforge.prompts.compiler import CompiledPrompt, PromptCompileError, PromptCompiler
from figforge.prompts.loader import (
    DEFAULT_PROMPTS_PATH,
    PromptLoader,
    PromptTemplate,
    TemplateNotFoundError,
    TemplateParseError,
)

__all__ = [
    "DEFAULT_PROMPTS_PATH",
    "CompiledPrompt",
    "PromptCompileError",
    "PromptCompiler",
    "PromptLoader",
    "PromptTemplate",
    "TemplateNotFoundError",
    "TemplateParseError",
]
