"""Tests for structured logging configuration."""

import json
import logging
from io import StringIO
from unittest.mock import patch

import structlog
from structlog.contextvars import get_contextvars

from src.core.logging import (
    bind_contextvars,
    bind_request_context,
    clear_contextvars,
    configure_logging,
    get_logger,
    unbind_contextvars,
)


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def setup_method(self) -> None:
        """Reset structlog and logging configuration before each test."""
        structlog.reset_defaults()
        clear_contextvars()

    def test_reads_log_level_environment_variable(self) -> None:
        with patch.dict("os.environ", {"LOG_LEVEL": "DEBUG"}):
            configure_logging(development=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_log_level_falls_back_to_info(self) -> None:
        configure_logging(development=True, log_level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_silences_upstream_sdk_loggers(self) -> None:
        configure_logging(development=True)
        for name in ("anthropic", "fal_client", "httpx", "uvicorn.access"):
            assert logging.getLogger(name).level == logging.WARNING

    def test_production_emits_json(self) -> None:
        output = StringIO()
        handler = logging.StreamHandler(output)

        with patch.dict("os.environ", {"ENVIRONMENT": "production"}):
            configure_logging(log_level="INFO")
        root_logger = logging.getLogger()
        root_logger.addHandler(handler)

        try:
            bind_contextvars(session_id="s1")
            get_logger("test").info("image_edit_started", aspect="16:9")
            handler.flush()
        finally:
            root_logger.removeHandler(handler)

        lines = [line for line in output.getvalue().splitlines() if line]
        parsed = json.loads(lines[-1])
        assert parsed["event"] == "image_edit_started"
        assert parsed["aspect"] == "16:9"
        assert parsed["session_id"] == "s1"
        assert parsed["level"] == "info"


class TestContextVars:
    """Tests for request-scoped context helpers."""

    def setup_method(self) -> None:
        """Clear context before each test."""
        clear_contextvars()

    def teardown_method(self) -> None:
        clear_contextvars()

    def test_bind_and_unbind(self) -> None:
        bind_contextvars(keep="this", remove="that")
        unbind_contextvars("remove")
        assert get_contextvars() == {"keep": "this"}

    def test_clear_removes_all(self) -> None:
        bind_contextvars(key1="value1", key2="value2")
        clear_contextvars()
        assert get_contextvars() == {}

    def test_bind_request_context_starts_fresh(self) -> None:
        bind_contextvars(leftover="previous request")

        request_id = bind_request_context("session-9", endpoint="image")

        assert len(request_id) == 12
        assert get_contextvars() == {
            "request_id": request_id,
            "session_id": "session-9",
            "endpoint": "image",
        }

    def test_request_ids_are_unique(self) -> None:
        assert bind_request_context("a") != bind_request_context("a")
