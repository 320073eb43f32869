"""Chat API route.

Conversation history is kept per session in memory and sent in full with
each completion request.
"""

from fastapi import APIRouter, Depends, status

from src.api.dependencies import get_ai_provider, get_chat_settings, get_conversation_store
from src.api.errors import ServiceError
from src.api.schemas import ChatReply, ChatRequest, ErrorResponse
from src.core.errors import wrap_upstream_error
from src.core.logging import bind_request_context, clear_contextvars, get_logger
from src.core.prompts import FALLBACK_REPLY, SYSTEM_PROMPT
from src.core.providers import AIProvider
from src.core.sessions import ConversationStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


@router.post(
    "/chat",
    response_model=ChatReply,
    responses={
        200: {"description": "Assistant reply"},
        400: {"model": ErrorResponse, "description": "Message is required"},
        500: {"model": ErrorResponse, "description": "Chat completion failed"},
    },
)
async def chat(
    body: ChatRequest,
    ai_provider: AIProvider = Depends(get_ai_provider),
    conversations: ConversationStore = Depends(get_conversation_store),
    chat_settings: tuple[int, float] = Depends(get_chat_settings),
) -> ChatReply:
    """Send a message and get the assistant's reply."""
    session_id = body.session_id
    bind_request_context(session_id, endpoint="chat")

    try:
        message = body.message.strip()
        if not message:
            raise ServiceError(
                status.HTTP_400_BAD_REQUEST,
                "MESSAGE_REQUIRED",
                "Message is required",
            )

        max_tokens, temperature = chat_settings
        conversations.append(session_id, "user", message)
        history = conversations.history(session_id)
        logger.info("chat_started", turns=len(history), message_length=len(message))

        try:
            response = await ai_provider.chat(
                history,
                system_prompt=SYSTEM_PROMPT,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except Exception as ex:
            # Drop the unanswered turn so a retry does not duplicate it
            conversations.discard_last(session_id, "user")
            error = wrap_upstream_error(ex)
            logger.exception("chat_failed", category=error.category.name)
            raise ServiceError(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "AI_ERROR",
                str(ex) or error.category.name,
            ) from ex

        reply = response.content.strip() or FALLBACK_REPLY
        conversations.append(session_id, "assistant", reply)
        logger.info("chat_completed", model=response.model, **response.usage)

        return ChatReply(reply=reply)
    finally:
        clear_contextvars()
