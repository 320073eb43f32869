"""Entry point for the HTTP API server.

This module provides the Uvicorn entrypoint for running the FastAPI
application as a standalone server.

Usage:
    # Development (with auto-reload):
    python api_main.py

    # Or directly with uvicorn:
    uvicorn src.api.app:app --reload --host 0.0.0.0 --port 3000

State is held in process memory, so run a single worker: separate
workers would each keep their own quota counters.
"""

import os

import uvicorn

from src.core.logging import configure_logging

# Configure structured logging before importing app
configure_logging()

if __name__ == "__main__":
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT") or os.getenv("PORT") or "3000")
    reload = os.getenv("API_RELOAD", "false").lower() == "true"
    workers = int(os.getenv("API_WORKERS", "1"))

    uvicorn.run(
        "src.api.app:app",
        host=host,
        port=port,
        reload=reload,
        workers=workers if not reload else 1,  # Can't use workers with reload
    )
