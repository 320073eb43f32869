"""FastAPI dependency injection for providers, stores and the quota ledger.

Example:
    from fastapi import Depends
    from src.api.dependencies import get_quota_ledger
    from src.core.quota import QuotaLedger

    @router.get("/usage")
    async def usage(ledger: QuotaLedger = Depends(get_quota_ledger)):
        return ledger.peek("default", 2).to_dict()
"""

from collections.abc import AsyncGenerator

from fastapi import Depends, Request

from src.core.logging import get_logger
from src.core.providers import AIProvider, ImageProvider
from src.core.quota import QuotaLedger
from src.core.sessions import ConversationStore, ProductImageStore

logger = get_logger(__name__)

DEFAULT_DAILY_IMAGE_LIMIT = 2


class AppState:
    """Application state container for shared resources.

    Owns the providers and every piece of per-session state. Each app
    created by create_app holds one instance on app.state.app_state,
    initialized in the app lifespan.
    """

    def __init__(self) -> None:
        self._ai_provider: AIProvider | None = None
        self._image_provider: ImageProvider | None = None
        self._quota_ledger: QuotaLedger | None = None
        self._conversations: ConversationStore | None = None
        self._product_images: ProductImageStore | None = None
        self.daily_image_limit = DEFAULT_DAILY_IMAGE_LIMIT
        self.chat_max_tokens = 500
        self.chat_temperature = 0.7
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        """Check if the app state has been initialized."""
        return self._initialized

    async def initialize(
        self,
        anthropic_api_key: str | None = None,
        anthropic_model: str | None = None,
        fal_api_key: str | None = None,
        fal_edit_model: str | None = None,
        daily_image_limit: int = DEFAULT_DAILY_IMAGE_LIMIT,
        chat_max_tokens: int = 500,
        chat_temperature: float = 0.7,
        max_history_turns: int | None = None,
        ai_provider: AIProvider | None = None,
        image_provider: ImageProvider | None = None,
        quota_ledger: QuotaLedger | None = None,
    ) -> None:
        """Initialize providers, stores and the quota ledger.

        Args:
            anthropic_api_key: Anthropic API key (or None to use env var).
            anthropic_model: Chat model override.
            fal_api_key: Fal.AI API key (or None to use env var).
            fal_edit_model: Image edit model override.
            daily_image_limit: Successful image edits allowed per session per UTC day.
            chat_max_tokens: Completion length cap for chat replies.
            chat_temperature: Sampling temperature for chat replies.
            max_history_turns: Per-session chat history cap, None for unbounded.
            ai_provider: Prebuilt chat provider, skips Anthropic construction.
            image_provider: Prebuilt image provider, skips Fal.AI construction.
            quota_ledger: Prebuilt ledger (e.g. with a fake clock).

        Raises:
            ValueError: If daily_image_limit is not positive.
        """
        if self._initialized:
            logger.warning("app_state_already_initialized")
            return

        if daily_image_limit <= 0:
            raise ValueError(f"daily_image_limit must be positive, got {daily_image_limit}")

        # Import providers here to avoid circular imports
        from src.providers.anthropic_provider import AnthropicProvider
        from src.providers.fal_provider import FalAIProvider

        self._ai_provider = ai_provider or AnthropicProvider(
            api_key=anthropic_api_key,
            default_model=anthropic_model,
            default_temperature=chat_temperature,
        )
        self._image_provider = image_provider or FalAIProvider(
            api_key=fal_api_key,
            edit_model=fal_edit_model,
        )
        logger.info("ai_providers_initialized")

        self._quota_ledger = quota_ledger or QuotaLedger()
        self._conversations = ConversationStore(max_turns=max_history_turns)
        self._product_images = ProductImageStore()
        self.daily_image_limit = daily_image_limit
        self.chat_max_tokens = chat_max_tokens
        self.chat_temperature = chat_temperature
        logger.info(
            "session_state_initialized",
            daily_image_limit=daily_image_limit,
            max_history_turns=max_history_turns,
        )

        self._initialized = True
        logger.info("app_state_initialized")

    async def shutdown(self) -> None:
        """Drop in-memory state on shutdown."""
        self._initialized = False
        logger.info("app_state_shutdown")

    @property
    def ai_provider(self) -> AIProvider:
        """Get the chat provider."""
        if self._ai_provider is None:
            raise RuntimeError("App state not initialized")
        return self._ai_provider

    @property
    def image_provider(self) -> ImageProvider:
        """Get the image edit provider."""
        if self._image_provider is None:
            raise RuntimeError("App state not initialized")
        return self._image_provider

    @property
    def quota_ledger(self) -> QuotaLedger:
        """Get the quota ledger."""
        if self._quota_ledger is None:
            raise RuntimeError("App state not initialized")
        return self._quota_ledger

    @property
    def conversations(self) -> ConversationStore:
        """Get the conversation store."""
        if self._conversations is None:
            raise RuntimeError("App state not initialized")
        return self._conversations

    @property
    def product_images(self) -> ProductImageStore:
        """Get the product image store."""
        if self._product_images is None:
            raise RuntimeError("App state not initialized")
        return self._product_images


def get_app_state(request: Request) -> AppState:
    """Get the AppState owned by the app serving this request."""
    return request.app.state.app_state


async def get_ai_provider(
    state: AppState = Depends(get_app_state),
) -> AsyncGenerator[AIProvider, None]:
    """FastAPI dependency for the chat provider."""
    yield state.ai_provider


async def get_image_provider(
    state: AppState = Depends(get_app_state),
) -> AsyncGenerator[ImageProvider, None]:
    """FastAPI dependency for the image edit provider."""
    yield state.image_provider


async def get_quota_ledger(
    state: AppState = Depends(get_app_state),
) -> AsyncGenerator[QuotaLedger, None]:
    """FastAPI dependency for the quota ledger."""
    yield state.quota_ledger


async def get_conversation_store(
    state: AppState = Depends(get_app_state),
) -> AsyncGenerator[ConversationStore, None]:
    """FastAPI dependency for the conversation store."""
    yield state.conversations


async def get_product_image_store(
    state: AppState = Depends(get_app_state),
) -> AsyncGenerator[ProductImageStore, None]:
    """FastAPI dependency for the product image store."""
    yield state.product_images


def get_daily_image_limit(state: AppState = Depends(get_app_state)) -> int:
    """FastAPI dependency for the configured daily image limit."""
    return state.daily_image_limit


def get_chat_settings(state: AppState = Depends(get_app_state)) -> tuple[int, float]:
    """FastAPI dependency for (max_tokens, temperature) of chat replies."""
    return state.chat_max_tokens, state.chat_temperature
