"""Error classification for upstream generation calls.

Upstream failures (chat completions, image edits) are classified into
transient errors that may succeed on retry and permanent errors that should
fail fast. Contract violations inside the service (e.g. misuse of the quota
ledger) are permanent errors with the INVALID_INPUT category.

Example:
    from src.core.errors import wrap_upstream_error

    try:
        images = await provider.edit(request)
    except Exception as ex:
        error = wrap_upstream_error(ex)
        logger.warning("upstream_failed", category=error.category.name)
        raise error from ex
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum, auto
from typing import TypeVar

from src.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ErrorCategory(Enum):
    """Classification of error types for handling decisions."""

    # Transient
    RATE_LIMIT = auto()
    TIMEOUT = auto()
    NETWORK = auto()
    SERVICE_UNAVAILABLE = auto()
    OVERLOADED = auto()

    # Permanent
    INVALID_INPUT = auto()
    AUTH_FAILURE = auto()
    NOT_FOUND = auto()
    CONFIGURATION = auto()
    UNKNOWN = auto()


RETRYABLE_CATEGORIES = frozenset(
    {
        ErrorCategory.RATE_LIMIT,
        ErrorCategory.TIMEOUT,
        ErrorCategory.NETWORK,
        ErrorCategory.SERVICE_UNAVAILABLE,
        ErrorCategory.OVERLOADED,
    }
)


class TransientError(Exception):
    """Upstream error that is temporary and can be retried.

    Attributes:
        category: The specific type of transient error.
        retry_after: Suggested wait time before retry (seconds), if known.
        original_error: The underlying exception that was classified.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        retry_after: float | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.retry_after = retry_after
        self.original_error = original_error

    @classmethod
    def from_exception(
        cls,
        ex: Exception,
        category: ErrorCategory | None = None,
        retry_after: float | None = None,
    ) -> "TransientError":
        """Create a TransientError from an existing exception."""
        return cls(
            message=str(ex),
            category=category or classify_error(ex),
            retry_after=retry_after,
            original_error=ex,
        )


class PermanentError(Exception):
    """Error that should not be retried.

    Attributes:
        category: The specific type of permanent error.
        original_error: The underlying exception that was classified.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.original_error = original_error

    @classmethod
    def from_exception(
        cls,
        ex: Exception,
        category: ErrorCategory | None = None,
    ) -> "PermanentError":
        """Create a PermanentError from an existing exception."""
        return cls(
            message=str(ex),
            category=category or classify_error(ex),
            original_error=ex,
        )


# Checked in order; a group matches when every keyword in it appears
_MESSAGE_RULES: tuple[tuple[ErrorCategory, tuple[tuple[str, ...], ...]], ...] = (
    (ErrorCategory.NETWORK, (("connection",), ("network",))),
    (ErrorCategory.RATE_LIMIT, (("rate", "limit"), ("429",), ("too many requests",))),
    (ErrorCategory.OVERLOADED, (("529",), ("overloaded",))),
    (
        ErrorCategory.SERVICE_UNAVAILABLE,
        (("503",), ("service unavailable",), ("502",), ("bad gateway",)),
    ),
    (
        ErrorCategory.AUTH_FAILURE,
        (
            ("401",),
            ("unauthorized",),
            ("403",),
            ("forbidden",),
            ("api key",),
            ("authentication",),
        ),
    ),
    (ErrorCategory.NOT_FOUND, (("404",), ("not found",))),
    (
        ErrorCategory.INVALID_INPUT,
        (("400",), ("bad request",), ("invalid",), ("validation",)),
    ),
    (
        ErrorCategory.CONFIGURATION,
        (("configuration",), ("not configured",), ("missing", "key"), ("missing", "env")),
    ),
)


def classify_error(error: Exception) -> ErrorCategory:
    """Classify an exception into an error category.

    Already-classified errors keep their category. Everything else is
    classified by type and then by keywords in the message.

    Args:
        error: The exception to classify.

    Returns:
        The ErrorCategory that best matches the error.
    """
    if isinstance(error, (TransientError, PermanentError)):
        return error.category

    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ErrorCategory.TIMEOUT

    status_code = getattr(error, "status_code", None)
    if status_code == 429:
        return ErrorCategory.RATE_LIMIT
    if status_code == 529:
        return ErrorCategory.OVERLOADED
    if status_code in (502, 503, 504):
        return ErrorCategory.SERVICE_UNAVAILABLE

    message = str(error).lower()
    for category, keyword_groups in _MESSAGE_RULES:
        if any(all(word in message for word in group) for group in keyword_groups):
            return category
    return ErrorCategory.UNKNOWN


def is_retryable(category: ErrorCategory) -> bool:
    """Check if an error category is safe to retry."""
    return category in RETRYABLE_CATEGORIES


def wrap_upstream_error(ex: Exception) -> TransientError | PermanentError:
    """Wrap an upstream exception as a transient or permanent error.

    Exceptions that are already classified are returned unchanged.
    """
    if isinstance(ex, (TransientError, PermanentError)):
        return ex
    category = classify_error(ex)
    if is_retryable(category):
        return TransientError.from_exception(ex, category)
    return PermanentError.from_exception(ex, category)


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args: object,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    **kwargs: object,
) -> T:
    """Retry an async call with exponential backoff on transient errors.

    Only idempotent calls should be wrapped: a retried call is sent again.

    Args:
        func: Async function to call.
        *args: Positional arguments to pass to func.
        max_retries: Maximum number of retry attempts.
        base_delay: Initial delay between retries (seconds).
        max_delay: Maximum delay between retries (seconds).
        exponential_base: Base for exponential backoff calculation.
        **kwargs: Keyword arguments to pass to func.

    Returns:
        The result of the function call.

    Raises:
        TransientError: If all retries are exhausted.
        PermanentError: If a non-retryable error occurs.
    """
    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except Exception as ex:
            category = classify_error(ex)

            if not is_retryable(category):
                logger.warning(
                    "permanent_error",
                    category=category.name,
                    error=str(ex),
                )
                raise PermanentError.from_exception(ex, category) from ex

            if attempt >= max_retries:
                logger.error(
                    "max_retries_exceeded",
                    category=category.name,
                    attempts=attempt + 1,
                    error=str(ex),
                )
                raise TransientError.from_exception(ex, category) from ex

            delay = min(base_delay * (exponential_base**attempt), max_delay)
            logger.warning(
                "retrying_after_error",
                category=category.name,
                attempt=attempt + 1,
                max_retries=max_retries,
                delay_seconds=delay,
                error=str(ex),
            )
            await asyncio.sleep(delay)

    raise RuntimeError("Unexpected state in retry_with_backoff")
