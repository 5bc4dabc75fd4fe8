"""
Health endpoints for the newsletter service.

Key behaviors:
- /health: Overall status from all registered checks
- /health/ready: Readiness probe (subscriber store reachable, startup done)
- /health/live: Liveness probe (process alive)

The registry lives on ``app.state`` so each application instance (and
each test client) gets its own set of checks.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# --- Types ---


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "latency_ms": round(self.latency_ms, 3),
        }


class HealthCheck(Protocol):
    """Protocol for health checks."""

    name: str

    def check(self) -> CheckResult:
        """Run the health check and return result."""
        ...


# --- Registry ---


class HealthCheckRegistry:
    """Checks to run plus the startup timestamp used for uptime."""

    def __init__(self) -> None:
        self._checks: list[HealthCheck] = []
        self._started_at: float | None = None

    def register(self, check: HealthCheck) -> None:
        self._checks.append(check)

    def run_all(self) -> list[CheckResult]:
        return [check.check() for check in self._checks]

    def clear(self) -> None:
        self._checks = []
        self._started_at = None

    def mark_started(self) -> None:
        self._started_at = time.time()

    @property
    def started(self) -> bool:
        return self._started_at is not None

    @property
    def uptime_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        return time.time() - self._started_at


def overall_status(results: list[CheckResult]) -> HealthStatus:
    if all(r.status == HealthStatus.HEALTHY for r in results):
        return HealthStatus.HEALTHY
    if any(r.status == HealthStatus.UNHEALTHY for r in results):
        return HealthStatus.UNHEALTHY
    return HealthStatus.DEGRADED


# --- Built-in Checks ---


class StartupCheck:
    """Healthy once the lifespan has finished building the service context."""

    name = "startup"

    def __init__(self, registry: HealthCheckRegistry) -> None:
        self._registry = registry

    def check(self) -> CheckResult:
        if self._registry.started:
            return CheckResult(
                name=self.name,
                status=HealthStatus.HEALTHY,
                message="Startup complete",
            )
        return CheckResult(
            name=self.name,
            status=HealthStatus.UNHEALTHY,
            message="Startup not complete",
        )


class DatabaseCheck:
    """Subscriber store connectivity, via the repository's ``ping``."""

    name = "database"

    def __init__(self, ping: Callable[[], Any]) -> None:
        self._ping = ping

    def check(self) -> CheckResult:
        start = time.time()
        try:
            self._ping()
        except Exception as e:
            latency = (time.time() - start) * 1000
            logger.warning("Database health check failed: %s", e)
            return CheckResult(
                name=self.name,
                status=HealthStatus.UNHEALTHY,
                message=f"Database error: {e!s}",
                latency_ms=latency,
            )
        return CheckResult(
            name=self.name,
            status=HealthStatus.HEALTHY,
            message="Database connected",
            latency_ms=(time.time() - start) * 1000,
        )


# --- FastAPI Router ---


def get_registry(request: Request) -> HealthCheckRegistry:
    registry: HealthCheckRegistry = request.app.state.health
    return registry


def create_health_router(version: str = "0.0.0") -> APIRouter:
    """
    Create FastAPI router for health endpoints.

    The checks are read from ``request.app.state.health`` at request time.
    """
    router = APIRouter(tags=["health"])

    @router.get(
        "/health",
        response_model=None,
        responses={
            200: {"description": "Service is healthy"},
            503: {"description": "Service is unhealthy"},
        },
    )
    def health_check(request: Request) -> JSONResponse:
        registry = get_registry(request)
        results = registry.run_all()
        overall = overall_status(results)

        status_code = (
            status.HTTP_200_OK
            if overall == HealthStatus.HEALTHY
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "status": overall.value,
                "version": version,
                "uptime_seconds": registry.uptime_seconds,
                "checks": [r.to_dict() for r in results],
            },
        )

    @router.get(
        "/health/ready",
        response_model=None,
        responses={
            200: {"description": "Service is ready to accept traffic"},
            503: {"description": "Service is not ready"},
        },
    )
    def readiness_check(request: Request) -> JSONResponse:
        """Readiness probe: every check must pass."""
        results = get_registry(request).run_all()
        is_ready = all(r.status == HealthStatus.HEALTHY for r in results)

        return JSONResponse(
            status_code=status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "ready": is_ready,
                "checks": [
                    {"name": r.name, "status": r.status.value, "message": r.message}
                    for r in results
                ],
            },
        )

    @router.get(
        "/health/live",
        response_model=None,
        responses={200: {"description": "Service process is alive"}},
    )
    def liveness_check(request: Request) -> JSONResponse:
        """Liveness probe. Always 200 while the process answers."""
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"alive": True, "uptime_seconds": get_registry(request).uptime_seconds},
        )

    return router
