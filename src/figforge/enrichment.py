"""Prompt enrichment: turn a short user request into a rich generation prompt.

A text model rewrites the request. Scientific figure styles get a
publication-oriented system prompt; everything else gets a general
image-prompting one. When a source image is attached it is sent along, and
the instructions switch to editing mode (strict or creative).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from figforge.observability.logging import get_logger
from figforge.prompts import PromptCompiler

if TYPE_CHECKING:
    from figforge.providers.base import TextProvider
    from figforge.providers.image import SourceImage

log = get_logger(__name__)

ENRICH_TEMPERATURE = 0.7
ENRICH_MAX_TOKENS = 2000

_GENERAL = "enrich_general"
_SCIENTIFIC = "enrich_scientific"

# (practice, prompt keywords, feature flag that forces it)
_PRACTICE_KEYWORDS: tuple[tuple[str, tuple[str, ...], str | None], ...] = (
    (
        "Hyper-Specific Details",
        ("lighting", "texture", "atmosphere", "shadow", "material"),
        None,
    ),
    (
        "Character Consistency",
        ("distinctive", "signature", "characteristic", "always wears", "always has"),
        "maintain_character_consistency",
    ),
    (
        "Compositional Integration",
        (
            "seamlessly",
            "harmoniously",
            "naturally integrated",
            "foreground",
            "midground",
            "background",
        ),
        "blend_images",
    ),
    (
        "Real-World Accuracy",
        ("authentic", "traditional", "typical of", "historically accurate", "culturally"),
        "use_world_knowledge",
    ),
    (
        "Camera Control Terminology",
        ("lens", "aperture", "f/", "mm ", "angle", "shot", "depth of field"),
        None,
    ),
    (
        "Atmospheric Enhancement",
        ("mood", "emotion", "feeling", "ambiance"),
        None,
    ),
)


@dataclass(frozen=True)
class FeatureFlags:
    """Request features that shape the enrichment instructions."""

    maintain_character_consistency: bool = False
    blend_images: bool = False
    use_world_knowledge: bool = False
    use_google_search: bool = False
    figure_style: str | None = None
    edit_mode: str | None = None


@dataclass(frozen=True)
class EnrichedPrompt:
    """Outcome of one enrichment call."""

    original_prompt: str
    structured_prompt: str
    selected_practices: list[str] = field(default_factory=list)


def infer_selected_practices(structured_prompt: str, features: FeatureFlags) -> list[str]:
    """Guess which prompting practices the enriched text applied.

    Based on keyword hits, plus the practices the feature flags demand.
    Never empty: falls back to ``General Enhancement``.
    """
    lowered = structured_prompt.lower()
    selected = [
        practice
        for practice, keywords, flag in _PRACTICE_KEYWORDS
        if (flag is not None and getattr(features, flag))
        or any(keyword in lowered for keyword in keywords)
    ]
    return selected or ["General Enhancement"]


class PromptEnricher:
    """Rewrite user prompts with the text backend.

    Args:
        text_provider: Text backend used for the rewrite.
        compiler: Prompt compiler (defaults to the packaged templates).
    """

    def __init__(
        self,
        text_provider: TextProvider,
        compiler: PromptCompiler | None = None,
    ) -> None:
        self._text = text_provider
        self._compiler = compiler or PromptCompiler()

    def build_system_instruction(self, features: FeatureFlags, has_source_image: bool) -> str:
        if features.figure_style:
            system = self._compiler.compile(_SCIENTIFIC).system
        else:
            system = self._compiler.compile(_GENERAL).system

        if has_source_image:
            key = "strict_editing_context" if features.edit_mode == "strict" else "editing_context"
            system += "\n\n" + self._compiler.fragment(_GENERAL, key)
        return system

    def build_instruction(
        self,
        user_prompt: str,
        features: FeatureFlags,
        has_source_image: bool,
    ) -> str:
        """Build the user turn sent to the text backend."""
        if features.figure_style:
            return self._build_scientific_instruction(user_prompt, features, has_source_image)

        editing_instruction = ""
        if has_source_image:
            key = "edit_note_strict" if features.edit_mode == "strict" else "edit_note_creative"
            editing_instruction = self._compiler.fragment(_GENERAL, key)

        return self._compiler.compile(
            _GENERAL,
            {
                "user_prompt": user_prompt,
                "editing_instruction": editing_instruction,
                "feature_context": self._build_feature_context(features),
            },
        ).user

    def _build_scientific_instruction(
        self,
        user_prompt: str,
        features: FeatureFlags,
        has_source_image: bool,
    ) -> str:
        style = features.figure_style or ""
        description = self._compiler.fragment(
            _SCIENTIFIC, f"description_{style}", default="a scientific illustration"
        )
        style_elements = self._compiler.fragment(_SCIENTIFIC, f"elements_{style}", default="")

        editing_instruction = ""
        if has_source_image:
            key = "edit_note_strict" if features.edit_mode == "strict" else "edit_note_creative"
            editing_instruction = self._compiler.fragment(_SCIENTIFIC, key)

        return self._compiler.compile(
            _SCIENTIFIC,
            {
                "user_prompt": user_prompt,
                "figure_description": description,
                "editing_instruction": editing_instruction,
                "style_elements": style_elements,
            },
        ).user

    def _build_feature_context(self, features: FeatureFlags) -> str:
        keys = [
            key
            for flag, key in (
                ("maintain_character_consistency", "requirement_character_consistency"),
                ("blend_images", "requirement_blend_images"),
                ("use_world_knowledge", "requirement_world_knowledge"),
            )
            if getattr(features, flag)
        ]
        if not keys:
            return ""
        requirements = "\n\n".join(self._compiler.fragment(_GENERAL, k) for k in keys)
        header = self._compiler.fragment(_GENERAL, "feature_header")
        return f"{header}\n\n{requirements}"

    async def enrich(
        self,
        user_prompt: str,
        features: FeatureFlags | None = None,
        source_image: SourceImage | None = None,
    ) -> EnrichedPrompt:
        """Rewrite one prompt.

        Raises:
            ValueError: If the prompt is blank.
            ProviderError: If the text backend fails.
        """
        if not user_prompt.strip():
            raise ValueError("User prompt cannot be empty")

        features = features or FeatureFlags()
        has_image = source_image is not None

        structured = await self._text.complete(
            self.build_instruction(user_prompt, features, has_image),
            temperature=ENRICH_TEMPERATURE,
            max_tokens=ENRICH_MAX_TOKENS,
            system_instruction=self.build_system_instruction(features, has_image),
            input_image=(source_image.data, source_image.mime_type) if source_image else None,
        )

        practices = infer_selected_practices(structured, features)
        log.info(
            "prompt_enriched",
            figure_style=features.figure_style,
            original_length=len(user_prompt),
            enriched_length=len(structured),
            selected_practices=practices,
        )
        return EnrichedPrompt(
            original_prompt=user_prompt,
            structured_prompt=structured,
            selected_practices=practices,
        )
