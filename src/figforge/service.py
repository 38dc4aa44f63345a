"""Tool surface: ``generate_image`` request handling end to end.

Backend clients are built lazily on the first call through an injectable
factory and cached for the lifetime of the service. Each call is otherwise
independent; nothing mutable is shared between calls besides that cache.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from figforge.config import Settings
from figforge.enrichment import PromptEnricher
from figforge.errors import FigForgeError, FileOperationError, InputValidationError
from figforge.formats import DEFAULT_MIME_TYPE, detect_mime_type, mime_type_for_path
from figforge.observability.logging import get_logger, request_context
from figforge.orchestrator import FigureJob, FigureOrchestrator
from figforge.providers.base import ProviderError, TextProvider
from figforge.providers.factory import create_chat_model, parse_provider_spec
from figforge.providers.image import GenerationOptions, ImageProvider, SourceImage
from figforge.providers.image_factory import create_image_provider
from figforge.providers.text import ChatTextProvider
from figforge.qa.evaluator import QaEvaluator
from figforge.response import build_error_response, build_success_response
from figforge.storage import FigureStore
from figforge.validation import (
    GenerateImageParams,
    tool_input_schema,
    validate_generate_image_params,
)

log = get_logger(__name__)

TOOL_NAME = "generate_image"
TOOL_DESCRIPTION = "Generate image with specified prompt and optional parameters"


@dataclass(frozen=True)
class BackendClients:
    """Backends shared by all calls of one service.

    Attributes:
        image: Image generation backend.
        text: Text backend for prompt enrichment, or None when disabled.
        qa_text: Text backend acting as the QA judge, or None when disabled.
    """

    image: ImageProvider
    text: TextProvider | None = None
    qa_text: TextProvider | None = None


ClientsFactory = Callable[[Settings], BackendClients]


def tool_descriptors() -> list[dict[str, Any]]:
    """Tool descriptors with their JSON input schemas."""
    return [
        {
            "name": TOOL_NAME,
            "description": TOOL_DESCRIPTION,
            "inputSchema": tool_input_schema(),
        }
    ]


def create_backend_clients(settings: Settings) -> BackendClients:
    """Build the configured backends.

    Raises:
        ProviderRejectedError: If a provider spec is unknown or misconfigured.
    """
    image = create_image_provider(
        settings.image_provider,
        api_key=settings.gemini_api_key or None,
        timeout=settings.api_timeout,
    )
    if not settings.text_enabled:
        log.info("text_backend_disabled")
        return BackendClients(image=image)

    provider, model = parse_provider_spec(settings.text_provider)
    api_key = settings.gemini_api_key or None
    text = ChatTextProvider(
        create_chat_model(provider, model, api_key=api_key),
        model_name=model,
        timeout=settings.api_timeout,
    )
    qa_text = ChatTextProvider(
        create_chat_model(provider, settings.qa_model, api_key=api_key),
        model_name=settings.qa_model,
        timeout=settings.api_timeout,
    )
    return BackendClients(image=image, text=text, qa_text=qa_text)


def read_source_image(path: str | Path) -> SourceImage:
    """Load an input image, trusting its magic bytes over its extension.

    Raises:
        FileOperationError: If the file cannot be read.
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise FileOperationError(f"Failed to read input image file: {e}") from e

    expected = mime_type_for_path(path)
    detected = detect_mime_type(data)
    if detected is None:
        return SourceImage(data=data, mime_type=expected or DEFAULT_MIME_TYPE)

    if expected and expected != detected:
        log.warning(
            "input_image_extension_mismatch",
            path=str(path),
            extension=path.suffix.lower(),
            expected_mime_type=expected,
            actual_mime_type=detected,
        )
    return SourceImage(data=data, mime_type=detected)


def build_job(params: GenerateImageParams, source_image: SourceImage | None) -> FigureJob:
    """Translate validated tool arguments into an orchestrator job."""
    return FigureJob(
        prompt=params.prompt,
        source_image=source_image,
        options=GenerationOptions(
            aspect_ratio=params.aspect_ratio,
            image_size=params.image_size,
            figure_style=params.figure_style,
            use_google_search=bool(params.use_google_search),
            edit_mode=params.edit_mode,
        ),
        validate_qa=params.validate_qa,
        maintain_character_consistency=bool(params.maintain_character_consistency),
        blend_images=bool(params.blend_images),
        use_world_knowledge=bool(params.use_world_knowledge),
    )


class FigureService:
    """Serve ``generate_image`` calls.

    Args:
        settings: Validated settings.
        clients_factory: Builds the backends on first use.
        store: Figure storage; defaults to ``settings.output_dir``.
    """

    def __init__(
        self,
        settings: Settings,
        clients_factory: ClientsFactory | None = None,
        store: FigureStore | None = None,
    ) -> None:
        self._settings = settings
        self._clients_factory = clients_factory or create_backend_clients
        self._store = store or FigureStore(settings.output_dir)
        self._clients: BackendClients | None = None
        self._clients_lock = asyncio.Lock()

    @property
    def settings(self) -> Settings:
        return self._settings

    async def get_clients(self) -> BackendClients:
        """Return the cached backends, building them exactly once."""
        async with self._clients_lock:
            if self._clients is None:
                self._clients = self._clients_factory(self._settings)
                log.info(
                    "backend_clients_initialized",
                    image_provider=self._settings.image_provider,
                    text_provider=self._settings.text_provider,
                    qa_model=self._settings.qa_model if self._clients.qa_text else None,
                )
            return self._clients

    def _build_orchestrator(self, clients: BackendClients) -> FigureOrchestrator:
        return FigureOrchestrator(
            clients.image,
            evaluator=QaEvaluator(clients.qa_text) if clients.qa_text is not None else None,
            enricher=PromptEnricher(clients.text) if clients.text is not None else None,
            qa_enabled=self._settings.qa_enabled,
            qa_max_retries=self._settings.qa_max_retries,
            enrichment_enabled=not self._settings.skip_prompt_enhancement,
        )

    def list_tools(self) -> list[dict[str, Any]]:
        return tool_descriptors()

    async def call_tool(self, name: str, arguments: Any) -> dict[str, Any]:
        """Dispatch a tool call; always returns a response envelope."""
        with request_context(tool=name):
            if name == TOOL_NAME:
                return await self.generate_image(arguments)
            log.error("tool_unknown")
            return build_error_response(
                InputValidationError(f"Unknown tool: {name}", f"Available tools: {TOOL_NAME}")
            )

    async def generate_image(self, arguments: Any) -> dict[str, Any]:
        """Validate, generate, evaluate, save and describe one figure."""
        started = time.monotonic()
        try:
            params = validate_generate_image_params(arguments)
            clients = await self.get_clients()
            source_image = (
                read_source_image(params.input_image_path) if params.input_image_path else None
            )

            result = await self._build_orchestrator(clients).run(build_job(params, source_image))
            saved_path = self._store.save(result.artifact.image_data, params.file_name)
        except (FigForgeError, ProviderError) as e:
            log.error("tool_call_failed", tool=TOOL_NAME, code=e.code, error=str(e))
            return build_error_response(e)
        except Exception as e:
            log.exception("tool_call_crashed", tool=TOOL_NAME, error_type=type(e).__name__)
            return build_error_response(e)

        processing_ms = int((time.monotonic() - started) * 1000)
        log.info(
            "figure_generated",
            path=str(saved_path),
            model=result.artifact.model,
            generation_calls=result.generation_calls,
            evaluation_calls=result.evaluation_calls,
            qa_status=result.qa_report.status if result.qa_report else None,
            processing_time_ms=processing_ms,
        )
        return build_success_response(
            result.artifact,
            saved_path,
            processing_time_ms=processing_ms,
            figure_style=params.figure_style,
            qa_report=result.qa_report,
        )
