"""Generation client protocols for chat and product image edits.

This module defines the interfaces (Protocols) the HTTP layer uses to reach
third-party generative AI services. Concrete implementations live in
src/providers/.
"""

from dataclasses import dataclass, field
from typing import Protocol

# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class ChatMessage:
    """A single turn in a conversation.

    Attributes:
        role: "user" or "assistant". The system prompt is passed to
            AIProvider.chat separately rather than stored as a turn.
        content: The text content of the message.
    """

    role: str  # "user" | "assistant"
    content: str


@dataclass
class ChatResponse:
    """A response from an AI chat completion.

    Attributes:
        content: The generated text. May be empty if the model returned
            no text blocks.
        model: The model identifier that generated the response.
        usage: Token usage statistics ("input_tokens", "output_tokens").
    """

    content: str
    model: str
    usage: dict[str, int] = field(default_factory=dict)


@dataclass
class ImageEditRequest:
    """Request parameters for editing a reference image.

    Attributes:
        image_data: Base64-encoded source image (no data URL header).
        prompt: Instruction describing the edit.
        aspect_ratio: Requested output framing, "16:9" or "9:16".
        content_type: MIME type of the source image.
    """

    image_data: str
    prompt: str
    aspect_ratio: str = "16:9"
    content_type: str = "image/png"


@dataclass
class GeneratedImage:
    """An image returned by an image provider.

    Attributes:
        url: URL or data URL where the image can be read, if provided.
        data: Base64-encoded image data, if provided inline.
        width: Width in pixels (0 when unknown).
        height: Height in pixels (0 when unknown).
        content_type: MIME type of the image.
        has_nsfw_content: Provider safety-checker verdict, None if unchecked.
    """

    url: str | None = None
    data: str | None = None
    width: int = 0
    height: int = 0
    content_type: str = "image/png"
    has_nsfw_content: bool | None = None


# =============================================================================
# Provider Protocols
# =============================================================================


class AIProvider(Protocol):
    """Protocol for chat completion providers."""

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
            system_prompt: Optional persona/instruction prompt.
            max_tokens: Maximum number of tokens to generate.
            temperature: Sampling temperature, provider default if None.

        Returns:
            A ChatResponse with the generated text.

        Raises:
            Exception: Provider-specific errors when the call fails.
                Callers treat any exception as an upstream failure.
        """
        ...


class ImageProvider(Protocol):
    """Protocol for image edit providers."""

    async def edit(self, request: ImageEditRequest) -> list[GeneratedImage]:
        """Edit a reference image according to a prompt.

        Args:
            request: The source image, instruction and framing.

        Returns:
            The edited images. An empty list means the provider returned
            nothing, which callers treat as a failure.

        Raises:
            Exception: Provider-specific errors when the call fails.
        """
        ...

    async def get_models(self) -> list[str]:
        """Get the model identifiers this provider uses."""
        ...
