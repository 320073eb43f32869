"""FastAPI application factory and configuration.

This module provides the main FastAPI application with CORS configuration,
lifespan management, error rendering, and route registration.

Example:
    from src.api import create_app

    app = create_app()

    # Run with uvicorn:
    # uvicorn src.api.app:app --reload
"""

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles

from src.api.dependencies import DEFAULT_DAILY_IMAGE_LIMIT, AppState
from src.api.errors import register_error_handlers
from src.api.routes import chat_router, health_router, images_router, product_router
from src.core.health import HealthChecker, ServiceCheck, ServiceStatus
from src.core.logging import get_logger

logger = get_logger(__name__)

APP_VERSION = os.getenv("APP_VERSION", "1.0.0")


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _create_health_checker(app_state: AppState) -> HealthChecker:
    """Create health checker with service checks for the API.

    Args:
        app_state: The application state container.

    Returns:
        Configured HealthChecker instance.
    """
    checker = HealthChecker(version=APP_VERSION)

    def provider_check(name: str, env_var: str, attr: str) -> ServiceCheck:
        if not app_state.is_initialized:
            return ServiceCheck(
                name=name,
                status=ServiceStatus.UNHEALTHY,
                message="App state not initialized",
            )
        details = {"provider": type(getattr(app_state, attr)).__name__}
        if os.getenv(env_var):
            return ServiceCheck(
                name=name,
                status=ServiceStatus.HEALTHY,
                message="API key configured",
                details=details,
            )
        return ServiceCheck(
            name=name,
            status=ServiceStatus.DEGRADED,
            message=f"{env_var} not set",
            details=details,
        )

    async def check_anthropic() -> ServiceCheck:
        """Check chat provider configuration."""
        return provider_check("anthropic", "ANTHROPIC_API_KEY", "ai_provider")

    async def check_fal() -> ServiceCheck:
        """Check image provider configuration."""
        return provider_check("fal", "FAL_KEY", "image_provider")

    async def check_session_state() -> ServiceCheck:
        """Report in-memory session state sizes."""
        if not app_state.is_initialized:
            return ServiceCheck(
                name="session_state",
                status=ServiceStatus.UNHEALTHY,
                message="App state not initialized",
            )
        return ServiceCheck(
            name="session_state",
            status=ServiceStatus.HEALTHY,
            details={
                "conversations": len(app_state.conversations),
                "product_images": len(app_state.product_images),
                "daily_image_limit": app_state.daily_image_limit,
            },
        )

    checker.add_check("anthropic", check_anthropic)
    checker.add_check("fal", check_fal)
    checker.add_check("session_state", check_session_state)

    return checker


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle - startup and shutdown.

    Reads configuration from the environment and initializes the app's
    state. A state initialized before startup (as in tests) is left as is.
    """
    logger.info("api_starting")

    app_state: AppState = app.state.app_state
    max_history = os.getenv("CHAT_MAX_HISTORY_TURNS")

    await app_state.initialize(
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        anthropic_model=os.getenv("ANTHROPIC_MODEL"),
        fal_api_key=os.getenv("FAL_KEY"),
        fal_edit_model=os.getenv("FAL_EDIT_MODEL"),
        daily_image_limit=_env_int("DAILY_IMAGE_LIMIT", DEFAULT_DAILY_IMAGE_LIMIT),
        chat_max_tokens=_env_int("CHAT_MAX_TOKENS", 500),
        chat_temperature=_env_float("CHAT_TEMPERATURE", 0.7),
        max_history_turns=int(max_history) if max_history else None,
    )

    app.state.health_checker = _create_health_checker(app_state)

    logger.info("api_started", version=APP_VERSION)

    yield

    logger.info("api_shutting_down")
    await app_state.shutdown()
    logger.info("api_shutdown_complete")


def create_app(
    title: str = "Edamame Brain API",
    description: str = "Content chat and product photo edits for brands",
    cors_origins: list[str] | None = None,
    app_state: AppState | None = None,
    static_dir: str | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        title: API title for OpenAPI docs.
        description: API description for OpenAPI docs.
        cors_origins: Allowed CORS origins. Defaults to CORS_ORIGINS env var,
            which defaults to all origins.
        app_state: State container to serve from. A fresh one is created
            when None.
        static_dir: Directory holding the browser front-end. Defaults to
            STATIC_DIR env var ("public"). Skipped when it does not exist.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title=title,
        description=description,
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.app_state = app_state or AppState()
    app.state.health_checker = _create_health_checker(app.state.app_state)

    if cors_origins is None:
        cors_origins_env = os.getenv("CORS_ORIGINS", "*")
        if cors_origins_env == "*":
            cors_origins = ["*"]
        else:
            cors_origins = [origin.strip() for origin in cors_origins_env.split(",")]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=cors_origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(product_router)
    app.include_router(chat_router)
    app.include_router(images_router)

    static_dir = static_dir or os.getenv("STATIC_DIR", "public")
    if os.path.isdir(static_dir):

        @app.get("/", include_in_schema=False)
        async def index() -> RedirectResponse:
            return RedirectResponse(url="/brain.html")

        # Mounted last so API routes take precedence
        app.mount("/", StaticFiles(directory=static_dir), name="static")

    logger.info(
        "app_configured",
        title=title,
        cors_origins=cors_origins,
        static_dir=static_dir if os.path.isdir(static_dir) else None,
    )

    return app


# Default app instance for uvicorn
app = create_app()
