"""Shared pytest fixtures for edamame-brain tests."""

import asyncio
import base64
import io
import struct
import zlib
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from PIL import Image

from src.api.app import create_app
from src.api.dependencies import AppState
from src.core.quota import QuotaLedger
from tests.mocks.providers import MockAIProvider, MockImageProvider

pytest_plugins = ["pytest_asyncio"]


class FakeClock:
    """Settable clock for crossing UTC day boundaries in tests."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2025, 3, 14, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_png_b64(size: tuple[int, int] = (32, 24), color: str = "green") -> str:
    """Encode a small solid-color PNG as base64."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("utf-8")


def make_oversized_png_b64(width: int = 30000, height: int = 30000) -> str:
    """Encode a PNG header declaring huge dimensions, with no pixel data."""

    def chunk(kind: bytes, data: bytes) -> bytes:
        crc = zlib.crc32(kind + data) & 0xFFFFFFFF
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", crc)

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    raw = (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", b"")
        + chunk(b"IEND", b"")
    )
    return base64.b64encode(raw).decode("utf-8")


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake clock fixed at midday UTC."""
    return FakeClock()


@pytest.fixture
def ledger(clock: FakeClock) -> QuotaLedger:
    """Provide an isolated quota ledger driven by the fake clock."""
    return QuotaLedger(clock=clock)


@pytest.fixture
def png_b64() -> str:
    """Provide a valid base64-encoded PNG."""
    return make_png_b64()


@pytest.fixture
def png_data_url(png_b64: str) -> str:
    """Provide a valid PNG data URL."""
    return f"data:image/png;base64,{png_b64}"


@pytest.fixture
def png_factory() -> Callable[..., str]:
    """Provide the PNG encoder for tests needing custom images."""
    return make_png_b64


@pytest.fixture
def mock_ai_provider() -> MockAIProvider:
    """Provide a mock chat provider.

    For custom replies or failures, create MockAIProvider directly.
    """
    return MockAIProvider()


@pytest.fixture
def mock_image_provider(png_b64: str) -> MockImageProvider:
    """Provide a mock image provider returning a valid PNG."""
    return MockImageProvider(image_b64=png_b64)


@pytest.fixture
def app_state(
    ledger: QuotaLedger,
    mock_ai_provider: MockAIProvider,
    mock_image_provider: MockImageProvider,
) -> AppState:
    """Provide an initialized AppState backed by mocks and the fake clock."""
    state = AppState()
    asyncio.run(
        state.initialize(
            daily_image_limit=2,
            ai_provider=mock_ai_provider,
            image_provider=mock_image_provider,
            quota_ledger=ledger,
        )
    )
    return state


@pytest.fixture
def app(app_state: AppState, tmp_path: Path) -> FastAPI:
    """Provide an app serving the mocked state, without static files."""
    return create_app(app_state=app_state, static_dir=str(tmp_path / "no-static"))


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Provide a test client (lifespan is not run)."""
    return TestClient(app)


@pytest.fixture
def upload_product(client: TestClient, png_data_url: str) -> Callable[..., Any]:
    """Provide a helper that uploads the default PNG for a session."""

    def upload(session_id: str = "s1") -> Any:
        response = client.post(
            "/api/product",
            json={"sessionId": session_id, "imageDataUrl": png_data_url},
        )
        assert response.status_code == 200
        return response

    return upload


@pytest.fixture
def oversized_png_b64() -> str:
    """Provide a tiny PNG whose header declares 30000x30000 pixels."""
    return make_oversized_png_b64()
