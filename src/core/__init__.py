"""Core business logic and protocols.

This module contains framework-agnostic logic: the per-session quota
ledger, in-memory session stores, provider protocols, and the shared
logging and error utilities.
"""

from src.core.errors import (
    ErrorCategory,
    PermanentError,
    TransientError,
    classify_error,
    is_retryable,
    retry_with_backoff,
    wrap_upstream_error,
)
from src.core.health import (
    HealthChecker,
    HealthReport,
    ServiceCheck,
    ServiceStatus,
)
from src.core.image_utils import (
    aspect_to_size,
    image_strip_headers,
    normalize_aspect,
    parse_data_url,
    verify_image,
)
from src.core.logging import (
    bind_contextvars,
    bind_request_context,
    clear_contextvars,
    configure_logging,
    get_logger,
    unbind_contextvars,
)
from src.core.providers import (
    AIProvider,
    ChatMessage,
    ChatResponse,
    GeneratedImage,
    ImageEditRequest,
    ImageProvider,
)
from src.core.quota import (
    QuotaDecision,
    QuotaInputError,
    QuotaLedger,
    QuotaUsage,
    Reservation,
    UsageRecord,
)
from src.core.sessions import ConversationStore, ProductImage, ProductImageStore

__all__ = [
    # Chat providers
    "AIProvider",
    "ChatMessage",
    "ChatResponse",
    # Error handling
    "ErrorCategory",
    "PermanentError",
    "TransientError",
    "classify_error",
    "is_retryable",
    "retry_with_backoff",
    "wrap_upstream_error",
    # Health checks
    "HealthChecker",
    "HealthReport",
    "ServiceCheck",
    "ServiceStatus",
    # Image providers
    "GeneratedImage",
    "ImageEditRequest",
    "ImageProvider",
    # Image utilities
    "aspect_to_size",
    "image_strip_headers",
    "normalize_aspect",
    "parse_data_url",
    "verify_image",
    # Logging
    "bind_contextvars",
    "bind_request_context",
    "clear_contextvars",
    "configure_logging",
    "get_logger",
    "unbind_contextvars",
    # Quota
    "QuotaDecision",
    "QuotaInputError",
    "QuotaLedger",
    "QuotaUsage",
    "Reservation",
    "UsageRecord",
    # Session stores
    "ConversationStore",
    "ProductImage",
    "ProductImageStore",
]
