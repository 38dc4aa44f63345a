"""Text/eval backend backed by a LangChain chat model.

A single call sends an optional system message and one human turn. When an
image is attached, the human turn is multimodal (image first, then text),
encoded as a base64 data URI the way LangChain chat models expect.
"""

from __future__ import annotations

import asyncio
import base64
from typing import TYPE_CHECKING, Any

from langchain_core.messages import HumanMessage, SystemMessage

from figforge.observability.logging import get_logger
from figforge.providers.base import EmptyResultError, ProviderError
from figforge.providers.image_gemini import classify_gemini_error

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel
    from langchain_core.messages import BaseMessage

log = get_logger(__name__)


def _message_text(response: Any) -> str:
    """Extract plain text from a chat response.

    Content is either a string or a list of content blocks; only text
    blocks are kept.
    """
    content = response.content if hasattr(response, "content") else response
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        chunks: list[str] = []
        for block in content:
            if isinstance(block, str):
                chunks.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                chunks.append(str(block.get("text", "")))
        return "".join(chunks)
    return str(content)


class ChatTextProvider:
    """TextProvider implementation over a LangChain ``BaseChatModel``.

    Args:
        chat_model: The chat model to call.
        model_name: Identifier reported in logs.
        timeout: Per-call timeout in seconds.
    """

    def __init__(
        self,
        chat_model: BaseChatModel | Any,
        *,
        model_name: str = "",
        timeout: float = 60.0,
    ) -> None:
        self._llm = chat_model
        self._model_name = model_name or str(getattr(chat_model, "model", ""))
        self._timeout = timeout

    @property
    def model(self) -> str:
        """Model identifier of the wrapped chat model."""
        return self._model_name

    def _with_limits(self, *, temperature: float, max_tokens: int) -> Any:
        """Return a copy of the chat model with per-call sampling limits.

        Only fields the model actually declares are updated, so test doubles
        and models without these knobs pass through unchanged.
        """
        fields = getattr(type(self._llm), "model_fields", {})
        update: dict[str, Any] = {}
        if "temperature" in fields:
            update["temperature"] = temperature
        # langchain-google-genai names it max_output_tokens; most others max_tokens
        if "max_output_tokens" in fields:
            update["max_output_tokens"] = max_tokens
        elif "max_tokens" in fields:
            update["max_tokens"] = max_tokens
        if not update:
            return self._llm
        return self._llm.model_copy(update=update)

    def _build_messages(
        self,
        instruction: str,
        system_instruction: str | None,
        input_image: tuple[bytes, str] | None,
    ) -> list[BaseMessage]:
        messages: list[BaseMessage] = []
        if system_instruction:
            messages.append(SystemMessage(content=system_instruction))

        if input_image is None:
            messages.append(HumanMessage(content=instruction))
            return messages

        data, mime_type = input_image
        b64 = base64.b64encode(data).decode("ascii")
        messages.append(
            HumanMessage(
                content=[
                    {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{b64}"}},
                    {"type": "text", "text": instruction},
                ]
            )
        )
        return messages

    async def complete(
        self,
        instruction: str,
        *,
        temperature: float,
        max_tokens: int,
        system_instruction: str | None = None,
        input_image: tuple[bytes, str] | None = None,
    ) -> str:
        """Run one completion.

        Raises:
            ProviderConnectionError: Network failure or timeout.
            ProviderRejectedError: The backend refused the request.
            EmptyResultError: The backend returned no text.
        """
        llm = self._with_limits(temperature=temperature, max_tokens=max_tokens)
        messages = self._build_messages(instruction, system_instruction, input_image)

        log.debug(
            "text_complete_start",
            model=self._model_name,
            instruction_length=len(instruction),
            has_image=input_image is not None,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        try:
            response = await asyncio.wait_for(llm.ainvoke(messages), timeout=self._timeout)
        except ProviderError:
            raise
        except Exception as e:
            raise classify_gemini_error(e, context="text generation") from e

        text = _message_text(response).strip()
        if not text:
            raise EmptyResultError("google", "Empty response from text model")

        log.debug("text_complete_done", model=self._model_name, response_length=len(text))
        return text
