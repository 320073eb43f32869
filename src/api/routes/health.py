"""Health check routes for the HTTP API.

These routes provide health, readiness, and liveness endpoints
for container orchestration and monitoring systems.
"""

from typing import Any

from fastapi import APIRouter, Request, Response

from src.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request, response: Response) -> dict[str, Any]:
    """Full health check with all service statuses.

    Returns 200 with ``ok: true`` while the service can take traffic
    (healthy or degraded), 503 otherwise.
    """
    report = await request.app.state.health_checker.check_all()
    response.status_code = 200 if report.is_ready else 503

    logger.info(
        "health_check",
        status=report.status.value,
        checks={c.name: c.status.value for c in report.checks},
    )
    return report.to_dict()


@router.get("/ready")
async def readiness_check(request: Request, response: Response) -> dict[str, Any]:
    """Readiness probe: 200 if the service is ready to receive traffic."""
    report = await request.app.state.health_checker.check_all()
    response.status_code = 200 if report.is_ready else 503
    return {"ready": report.is_ready, "status": report.status.value}


@router.get("/live")
async def liveness_check() -> dict[str, bool]:
    """Liveness probe: 200 while the process is serving requests."""
    return {"alive": True}
