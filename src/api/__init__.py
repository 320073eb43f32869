"""HTTP API package for the browser front-end.

This module provides a FastAPI-based HTTP API for content chat, product
image uploads, and quota-limited product photo edits.
"""

from src.api.app import create_app
from src.api.dependencies import (
    AppState,
    get_ai_provider,
    get_image_provider,
    get_quota_ledger,
)

__all__ = [
    "AppState",
    "create_app",
    "get_ai_provider",
    "get_image_provider",
    "get_quota_ledger",
]
