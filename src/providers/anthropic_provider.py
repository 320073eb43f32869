"""Anthropic Claude chat provider implementation.

This module provides an implementation of the AIProvider protocol
for Anthropic's Claude API.
"""

from __future__ import annotations

import logging
from typing import Any

from anthropic import AsyncAnthropic

from src.core.errors import retry_with_backoff
from src.core.providers import AIProvider, ChatMessage, ChatResponse

logger = logging.getLogger(__name__)


class AnthropicProvider:
    """Anthropic Claude API provider implementing AIProvider protocol.

    Chat completions are idempotent from the caller's point of view, so
    transient failures (overloaded, rate limited, timeouts) are retried with
    exponential backoff. Permanent failures surface immediately.

    Attributes:
        _client: The AsyncAnthropic client instance.
        _default_model: The model used for completions.
        _default_temperature: Sampling temperature when the caller sets none.
        _max_retries: Maximum retry attempts for transient errors.
        _base_delay: Base delay for exponential backoff (seconds).
    """

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(
        self,
        api_key: str | None,
        default_model: str | None = None,
        default_temperature: float = 0.7,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ) -> None:
        """Initialize the Anthropic provider.

        Args:
            api_key: The Anthropic API key. If None, the SDK reads
                ANTHROPIC_API_KEY from the environment.
            default_model: The model to use. Defaults to DEFAULT_MODEL.
            default_temperature: Temperature used when chat() gets None.
            max_retries: Maximum number of retries for transient errors.
            base_delay: Base delay in seconds for exponential backoff.
        """
        self._client = AsyncAnthropic(api_key=api_key)
        self._default_model = default_model or self.DEFAULT_MODEL
        self._default_temperature = default_temperature
        self._max_retries = max_retries
        self._base_delay = base_delay

    @property
    def model(self) -> str:
        """The model used for completions."""
        return self._default_model

    def _convert_messages(self, messages: list[ChatMessage]) -> list[dict[str, str]]:
        """Convert ChatMessage list to Anthropic API format.

        System messages are dropped; Anthropic takes the system prompt as a
        separate parameter.
        """
        return [
            {"role": msg.role, "content": msg.content}
            for msg in messages
            if msg.role != "system"
        ]

    async def chat(
        self,
        messages: list[ChatMessage],
        *,
        system_prompt: str | None = None,
        max_tokens: int = 500,
        temperature: float | None = None,
    ) -> ChatResponse:
        """Generate a chat completion from a conversation.

        Args:
            messages: Conversation turns, oldest first.
            system_prompt: Optional persona prompt, sent as the system param.
            max_tokens: Maximum tokens to generate. Defaults to 500.
            temperature: Sampling temperature. Defaults to the provider's.

        Returns:
            A ChatResponse with the concatenated text blocks.

        Raises:
            TransientError: If retries are exhausted on a transient failure.
            PermanentError: If the API rejects the request.
        """
        kwargs: dict[str, Any] = {
            "model": self._default_model,
            "max_tokens": max_tokens,
            "messages": self._convert_messages(messages),
            "temperature": (
                self._default_temperature if temperature is None else temperature
            ),
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        logger.debug(
            "Sending %d messages to Anthropic model %s",
            len(kwargs["messages"]),
            self._default_model,
        )

        response = await retry_with_backoff(
            self._client.messages.create,
            max_retries=self._max_retries,
            base_delay=self._base_delay,
            **kwargs,
        )

        content = "".join(
            block.text
            for block in response.content
            if getattr(block, "type", "text") == "text"
        )

        return ChatResponse(
            content=content,
            model=response.model,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
        )


# Protocol compliance verification
def _verify_protocol_compliance() -> None:
    """Static check that AnthropicProvider implements AIProvider."""
    _: AIProvider = AnthropicProvider(api_key="test")  # noqa: F841
