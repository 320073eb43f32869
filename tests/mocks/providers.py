"""Mock implementations of provider protocols for testing.

These mocks implement the AIProvider and ImageProvider protocols defined in
src/core/providers.py without making real API calls.

Features:
- Configurable responses for predictable test behavior
- Injectable failures to exercise upstream-error handling
- Call tracking for assertions (call_count, last_messages, etc.)
- An optional gate to hold edits in flight for concurrency tests
"""

import asyncio

from src.core.providers import (
    ChatMessage,
    ChatResponse,
    GeneratedImage,
    ImageEditRequest,
)


class MockAIProvider:
    """Mock implementation of the AIProvider protocol.

    Attributes:
        responses: Reply texts, used in order; the last one repeats.
        error: If set, raised from every chat() call.
        call_count: Number of chat() calls.
        last_messages: Messages from the most recent call (copied).
        last_system_prompt: System prompt from the most recent call.
        last_max_tokens: max_tokens from the most recent call.
        last_temperature: temperature from the most recent call.

    Example:
        >>> provider = MockAIProvider(responses=["Hello!"])
        >>> response = await provider.chat([ChatMessage("user", "Hi")])
        >>> assert response.content == "Hello!"
    """

    def __init__(
        self,
        responses: list[str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.responses = responses or ["Mock response"]
        self.error = error
        self.call_count = 0
        self.last_messages: list[ChatMessage] | None = None
        self.last_system_prompt: str | None = None
        self.last_max_tokens: int | None = None
        self.last_temperature: float | None = None

    async def chat(
        self,
        messages: list[ChatMessage],
        *,
        system_prompt: str | None = None,
        max_tokens: int = 500,
        temperature: float | None = None,
    ) -> ChatResponse:
        """Record the call and return the next configured reply."""
        self.call_count += 1
        self.last_messages = list(messages)
        self.last_system_prompt = system_prompt
        self.last_max_tokens = max_tokens
        self.last_temperature = temperature

        if self.error is not None:
            raise self.error

        response_idx = min(self.call_count - 1, len(self.responses) - 1)
        return ChatResponse(
            content=self.responses[response_idx],
            model="mock-model",
            usage={"input_tokens": 10, "output_tokens": 20},
        )


class MockImageProvider:
    """Mock implementation of the ImageProvider protocol.

    Attributes:
        image_b64: Base64 data returned for each edit.
        error: If set, raised from every edit() call.
        return_empty: If True, edit() returns no images.
        gate: If set, edit() waits on it before returning.
        call_count: Number of edit() calls.
        last_request: The most recent ImageEditRequest.
    """

    def __init__(
        self,
        image_b64: str = "aW1hZ2U=",
        error: Exception | None = None,
        return_empty: bool = False,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.image_b64 = image_b64
        self.error = error
        self.return_empty = return_empty
        self.gate = gate
        self.call_count = 0
        self.last_request: ImageEditRequest | None = None

    async def edit(self, request: ImageEditRequest) -> list[GeneratedImage]:
        """Record the request and return a single edited image."""
        self.call_count += 1
        self.last_request = request

        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.return_empty:
            return []

        return [
            GeneratedImage(
                url=f"data:image/png;base64,{self.image_b64}",
                data=self.image_b64,
                width=1536,
                height=1024,
                content_type="image/png",
            )
        ]

    async def get_models(self) -> list[str]:
        """Return the mock model name."""
        return ["mock-edit-model"]
