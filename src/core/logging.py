"""Structured logging configuration using structlog.

Development runs get colored console output; production runs emit one JSON
object per line for log aggregation.

Usage:
    from src.core.logging import get_logger, configure_logging

    configure_logging()  # once, at process start

    logger = get_logger(__name__)
    logger.info("image_edit_started", session_id="s1", aspect="16:9")
"""

import logging
import sys
from os import getenv
from typing import Any, cast
from uuid import uuid4

import structlog
from structlog.types import Processor

# Upstream SDKs and the HTTP stack are noisy at INFO
_QUIET_LOGGERS = ("anthropic", "fal_client", "httpx", "httpcore", "uvicorn.access")


def configure_logging(
    development: bool | None = None,
    log_level: str | None = None,
) -> None:
    """Configure structured logging for the service.

    Args:
        development: If True, use pretty-printed output. If False, use JSON.
            If None, reads ENVIRONMENT (anything but "production" is
            development).
        log_level: Log level name (DEBUG, INFO, WARNING, ERROR). If None,
            reads LOG_LEVEL (default: INFO).
    """
    if development is None:
        development = getenv("ENVIRONMENT", "development").lower() != "production"

    if log_level is None:
        log_level = getenv("LOG_LEVEL", "INFO")
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if development:
        processors: list[Processor] = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # force=True replaces handlers installed by uvicorn or earlier calls
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
        force=True,
    )
    logging.getLogger().setLevel(numeric_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module.
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))


def bind_contextvars(**kwargs: Any) -> None:
    """Bind request-scoped values included in all subsequent log calls."""
    structlog.contextvars.bind_contextvars(**kwargs)


def bind_request_context(session_id: str, **kwargs: Any) -> str:
    """Start a fresh logging context for one HTTP request.

    Clears anything left over from a previous request on the same worker,
    then binds the session id and a new request id.

    Args:
        session_id: The session the request belongs to.
        **kwargs: Extra values to bind (e.g. endpoint name).

    Returns:
        The generated request id.
    """
    request_id = uuid4().hex[:12]
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id, session_id=session_id, **kwargs
    )
    return request_id


def clear_contextvars() -> None:
    """Clear all bound context variables at the end of a request."""
    structlog.contextvars.clear_contextvars()


def unbind_contextvars(*keys: str) -> None:
    """Remove specific context variables."""
    structlog.contextvars.unbind_contextvars(*keys)
