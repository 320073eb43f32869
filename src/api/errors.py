"""HTTP error responses for the API.

Errors are rendered as flat JSON objects (``{"error": CODE, "message": ...}``)
rather than FastAPI's default ``{"detail": ...}`` envelope, which is the shape
the browser client reads.
"""

from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.core.logging import get_logger

logger = get_logger(__name__)


class ServiceError(HTTPException):
    """HTTP error with a machine-readable code and optional extra fields.

    Attributes:
        code: Error code such as "DAILY_LIMIT_REACHED".
        message: Human-readable explanation.
        extra: Additional top-level response fields (e.g. usage).
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str | None = None,
        **extra: Any,
    ) -> None:
        super().__init__(status_code=status_code, detail=message or code)
        self.code = code
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON response body."""
        body: dict[str, Any] = {"error": self.code}
        if self.message is not None:
            body["message"] = self.message
        body.update(self.extra)
        return body


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a ServiceError as flat JSON."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation failures as 400 INVALID_REQUEST."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"

    logger.info("request_validation_failed", path=request.url.path, error=message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "INVALID_REQUEST", "message": message},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the flat-JSON error handlers on an app."""
    app.add_exception_handler(ServiceError, service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
