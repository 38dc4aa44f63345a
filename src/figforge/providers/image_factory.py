"""Image provider factory.

Spec strings have the form ``provider[/model]``:

* ``gemini/gemini-3-pro-image-preview`` (``google`` is an alias of ``gemini``)
* ``placeholder`` for offline runs; any model part is ignored

Provider modules are imported on demand so the placeholder path never loads
the Gemini SDK.
"""

from __future__ import annotations

from typing import Any

from figforge.observability.logging import get_logger
from figforge.providers.base import ProviderRejectedError
from figforge.providers.image import ImageProvider

log = get_logger(__name__)

IMAGE_PROVIDERS: tuple[str, ...] = ("gemini", "placeholder")

_ALIASES = {"google": "gemini"}


def parse_image_provider_spec(provider_spec: str) -> tuple[str, str | None]:
    """Split a spec into ``(provider, model)``; model is None when omitted.

    Raises:
        ProviderRejectedError: If the provider is unknown.
    """
    provider, _, model = provider_spec.strip().partition("/")
    provider = provider.lower()
    provider = _ALIASES.get(provider, provider)
    if provider not in IMAGE_PROVIDERS:
        raise ProviderRejectedError(
            provider,
            f"Unknown image provider: {provider}",
            suggestion="Use 'gemini/<model>' or 'placeholder'",
        )
    return provider, model or None


def create_image_provider(provider_spec: str, **kwargs: Any) -> ImageProvider:
    """Create an image provider from a spec string.

    Args:
        provider_spec: ``provider[/model]``; the provider default model is
            used when the model part is missing.
        **kwargs: Gemini constructor options (``api_key``, ``timeout``,
            ``client``). Ignored by the placeholder.

    Raises:
        ProviderRejectedError: If the provider is unknown or misconfigured.
    """
    provider, model = parse_image_provider_spec(provider_spec)

    if provider == "placeholder":
        from figforge.providers.image_placeholder import PlaceholderImageProvider

        log.info("image_provider_created", provider=provider)
        return PlaceholderImageProvider()

    from figforge.providers.image_gemini import DEFAULT_IMAGE_MODEL, GeminiImageProvider

    image_provider = GeminiImageProvider(model=model or DEFAULT_IMAGE_MODEL, **kwargs)
    log.info("image_provider_created", provider=provider, model=image_provider.model)
    return image_provider
