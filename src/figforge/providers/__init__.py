"""Backend provider integrations (Gemini image generation, LangChain chat)."""

from figforge.providers.base import (
    ContentBlockedError,
    EmptyResultError,
    FailureKind,
    ProviderConnectionError,
    ProviderError,
    ProviderRejectedError,
    QaInfrastructureError,
    TextProvider,
)
from figforge.providers.factory import create_chat_model, parse_provider_spec
from figforge.providers.image import (
    GenerationOptions,
    GenerationRequest,
    ImageProvider,
    ImageResult,
    SourceImage,
)
from figforge.providers.image_factory import create_image_provider
from figforge.providers.text import ChatTextProvider

__all__ = [
    "ChatTextProvider",
    "ContentBlockedError",
    "EmptyResultError",
    "FailureKind",
    "GenerationOptions",
    "GenerationRequest",
    "ImageProvider",
    "ImageResult",
    "ProviderConnectionError",
    "ProviderError",
    "ProviderRejectedError",
    "QaInfrastructureError",
    "SourceImage",
    "TextProvider",
    "create_chat_model",
    "create_image_provider",
    "parse_provider_spec",
]
