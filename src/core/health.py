"""Service health aggregation.

Each dependency (upstream API configuration, in-memory state) registers an
async check; the checker runs them concurrently and folds the results into
one report served by the /health, /ready and /live routes.

Example:
    checker = HealthChecker(version="1.0.0")
    checker.add_check("anthropic", check_anthropic)
    report = await checker.check_all()
"""

import asyncio
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from src.core.logging import get_logger

logger = get_logger(__name__)

CHECK_TIMEOUT_SECONDS = 10.0


class ServiceStatus(Enum):
    """Status of an individual service."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"
    UNKNOWN = "unknown"


@dataclass
class ServiceCheck:
    """Result of a single service health check."""

    name: str
    status: ServiceStatus
    latency_ms: float | None = None
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthReport:
    """Aggregated health report for all services."""

    status: ServiceStatus
    timestamp: str
    checks: list[ServiceCheck]
    version: str | None = None

    @property
    def is_ready(self) -> bool:
        """Whether the service can take traffic (degraded still serves)."""
        return self.status in (ServiceStatus.HEALTHY, ServiceStatus.DEGRADED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "ok": self.is_ready,
            "status": self.status.value,
            "timestamp": self.timestamp,
            "version": self.version,
            "checks": [
                {
                    "name": check.name,
                    "status": check.status.value,
                    "latency_ms": check.latency_ms,
                    "message": check.message,
                    "details": check.details,
                }
                for check in self.checks
            ],
        }


HealthCheckFunc = Callable[[], Coroutine[Any, Any, ServiceCheck]]


def _overall_status(checks: list[ServiceCheck]) -> ServiceStatus:
    if all(c.status == ServiceStatus.HEALTHY for c in checks):
        return ServiceStatus.HEALTHY
    if any(c.status == ServiceStatus.UNHEALTHY for c in checks):
        return ServiceStatus.UNHEALTHY
    if any(c.status == ServiceStatus.DEGRADED for c in checks):
        return ServiceStatus.DEGRADED
    return ServiceStatus.UNKNOWN


class HealthChecker:
    """Runs registered health checks and aggregates their results."""

    def __init__(self, version: str | None = None) -> None:
        self._checks: dict[str, HealthCheckFunc] = {}
        self._version = version

    def add_check(self, name: str, check_func: HealthCheckFunc) -> None:
        """Register a health check function under a service name."""
        self._checks[name] = check_func

    async def check_one(self, name: str) -> ServiceCheck:
        """Run a single health check.

        A check that raises or exceeds CHECK_TIMEOUT_SECONDS is reported as
        unhealthy rather than propagating.

        Raises:
            KeyError: If no check is registered with that name.
        """
        if name not in self._checks:
            raise KeyError(f"No health check registered for: {name}")

        loop = asyncio.get_running_loop()
        start = loop.time()

        def elapsed_ms() -> float:
            return round((loop.time() - start) * 1000, 2)

        try:
            result = await asyncio.wait_for(
                self._checks[name](), timeout=CHECK_TIMEOUT_SECONDS
            )
        except TimeoutError:
            return ServiceCheck(
                name=name,
                status=ServiceStatus.UNHEALTHY,
                latency_ms=elapsed_ms(),
                message="Health check timed out",
            )
        except Exception as ex:
            logger.warning("health_check_failed", check=name, error=str(ex))
            return ServiceCheck(
                name=name,
                status=ServiceStatus.UNHEALTHY,
                latency_ms=elapsed_ms(),
                message=str(ex),
            )

        if result.latency_ms is None:
            result.latency_ms = elapsed_ms()
        return result

    async def check_all(self) -> HealthReport:
        """Run all registered checks concurrently."""
        timestamp = datetime.now(UTC).isoformat()
        checks = list(
            await asyncio.gather(*(self.check_one(name) for name in self._checks))
        )
        return HealthReport(
            status=_overall_status(checks) if checks else ServiceStatus.HEALTHY,
            timestamp=timestamp,
            checks=checks,
            version=self._version,
        )
