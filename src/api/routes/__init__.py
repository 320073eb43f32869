"""API routes package.

This module contains all route handlers for the HTTP API.
"""

from src.api.routes.chat import router as chat_router
from src.api.routes.health import router as health_router
from src.api.routes.images import router as images_router
from src.api.routes.product import router as product_router

__all__ = [
    "chat_router",
    "health_router",
    "images_router",
    "product_router",
]
