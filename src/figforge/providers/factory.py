"""Factory for creating chat models used as the text/eval backend.

Uses LangChain's init_chat_model abstraction for unified provider
instantiation. Only Google's Gemini models are wired up; ``gemini`` is an
accepted alias for ``google``.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from figforge.observability.logging import get_logger
from figforge.providers.base import ProviderRejectedError

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel

log = get_logger(__name__)

# Provider default models
PROVIDER_DEFAULTS: dict[str, str] = {
    "google": "gemini-2.0-flash",
}

_KNOWN_PROVIDERS = frozenset(PROVIDER_DEFAULTS)


def get_default_model(provider_name: str) -> str | None:
    """Get the default model for a provider, or None if unknown."""
    return PROVIDER_DEFAULTS.get(_normalize_provider(provider_name))


def parse_provider_spec(spec: str) -> tuple[str, str]:
    """Split ``provider/model`` into its parts, filling in the default model.

    Raises:
        ProviderRejectedError: If the provider is unknown.
    """
    provider, _, model = spec.partition("/")
    provider = _normalize_provider(provider)
    if provider not in _KNOWN_PROVIDERS:
        raise ProviderRejectedError(
            provider,
            f"Unknown text provider: {provider}",
            suggestion="Use 'google/<model>' for the text backend",
        )
    return provider, model or PROVIDER_DEFAULTS[provider]


def create_chat_model(
    provider_name: str,
    model: str,
    **kwargs: Any,
) -> BaseChatModel:
    """Create a LangChain BaseChatModel.

    Args:
        provider_name: Provider identifier (``google`` or ``gemini``).
        model: Model name/identifier.
        **kwargs: Additional provider-specific options (``api_key``, ``timeout``).

    Returns:
        Configured BaseChatModel.

    Raises:
        ProviderRejectedError: If the provider is unknown, misconfigured or
            its integration package is missing.
    """
    provider = _normalize_provider(provider_name)

    if provider not in _KNOWN_PROVIDERS:
        log.error("provider_unknown", provider=provider)
        raise ProviderRejectedError(provider, f"Unknown provider: {provider}")

    kwargs = _preprocess_provider_kwargs(provider, kwargs)

    try:
        chat_model = _init_chat_model_safe(_map_provider_for_init(provider), model, **kwargs)
    except ImportError as e:
        log.error("provider_import_error", provider=provider, package="langchain-google-genai")
        raise ProviderRejectedError(
            provider,
            "langchain-google-genai not installed. Run: pip install langchain-google-genai",
        ) from e

    log.info("chat_model_created", provider=provider, model=model)
    return chat_model


def _init_chat_model_safe(provider: str, model: str, **kwargs: Any) -> BaseChatModel:
    """Call init_chat_model; ImportError propagates when the package is missing."""
    from langchain.chat_models import init_chat_model

    result: BaseChatModel = init_chat_model(model=model, model_provider=provider, **kwargs)
    return result


def _preprocess_provider_kwargs(provider: str, kwargs: dict[str, Any]) -> dict[str, Any]:
    """Resolve the API key from kwargs or the environment.

    ``GEMINI_API_KEY`` is preferred; ``GOOGLE_API_KEY`` is accepted as the
    LangChain integration's own convention.

    Raises:
        ProviderRejectedError: If no API key is available.
    """
    kwargs = dict(kwargs)

    if provider == "google":
        api_key = (
            kwargs.pop("google_api_key", None)
            or kwargs.get("api_key")
            or os.getenv("GEMINI_API_KEY")
            or os.getenv("GOOGLE_API_KEY")
        )
        if not api_key:
            log.error("provider_config_error", provider="google", missing="GEMINI_API_KEY")
            raise ProviderRejectedError(
                "google",
                "API key required. Set GEMINI_API_KEY environment variable.",
                suggestion="Set GEMINI_API_KEY in your environment or .env file",
            )
        kwargs["api_key"] = api_key

    return kwargs


def _map_provider_for_init(provider: str) -> str:
    # init_chat_model expects 'google_genai' not 'google'
    if provider == "google":
        return "google_genai"
    return provider


def _normalize_provider(provider_name: str) -> str:
    name = provider_name.lower()
    if name == "gemini":
        return "google"
    return name
