"""
Store health checks.

A check is a plain function returning a details dict (or raising). Wrapping it
with `sync_health_check_with_timeout` runs it on a worker thread, so a store
that hangs during server selection or connect cannot stall the caller:

    @sync_health_check_with_timeout(timeout=3.0, component="mongo")
    def check_mongo_health(mongo_db):
        mongo_db.command("ping")
        return {"database": mongo_db.name}

    check_mongo_health(db)  # HealthCheckResult(status=HEALTHY, latency_ms=1.2, ...)
"""

from __future__ import annotations

import concurrent.futures
import functools
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable

from shared.config.logging import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class HealthCheckResult:
    status: HealthStatus
    component: str
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        """Body fragment for /api/health; empty fields are left out."""
        body: dict[str, Any] = {"status": self.status.value, "component": self.component}
        if self.latency_ms is not None:
            body["latency_ms"] = round(self.latency_ms, 2)
        if self.error:
            body["error"] = self.error
        if self.details:
            body["details"] = self.details
        return body


def overall_status(results: Iterable[HealthCheckResult]) -> HealthStatus:
    """healthy if all are, unhealthy if none are, degraded in between."""
    flags = [result.healthy for result in results]
    if all(flags):
        return HealthStatus.HEALTHY
    if any(flags):
        return HealthStatus.DEGRADED
    return HealthStatus.UNHEALTHY


def sync_health_check_with_timeout(
    timeout: float = 5.0,
    component: str | None = None,
):
    """
    Turn a details-returning check into one returning HealthCheckResult.

    Exceptions and timeouts become UNHEALTHY results and are logged at warning.
    """

    def decorator(func: Callable[..., dict[str, Any] | None]) -> Callable[..., HealthCheckResult]:
        name = component or func.__name__.replace("check_", "").replace("_health", "")

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> HealthCheckResult:
            started = time.perf_counter()
            # Not a `with` block: leaving it would wait for a hung check
            executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
            try:
                details = executor.submit(func, *args, **kwargs).result(timeout=timeout)
                return HealthCheckResult(
                    status=HealthStatus.HEALTHY,
                    component=name,
                    latency_ms=(time.perf_counter() - started) * 1000,
                    details=details if isinstance(details, dict) else {},
                )
            except concurrent.futures.TimeoutError:
                error = f"timeout after {timeout}s"
            except Exception as exc:
                error = str(exc) or type(exc).__name__
            finally:
                executor.shutdown(wait=False)

            latency_ms = (time.perf_counter() - started) * 1000
            logger.warning("Health check failed", component=name, error=error, latency_ms=latency_ms)
            return HealthCheckResult(
                status=HealthStatus.UNHEALTHY,
                component=name,
                latency_ms=latency_ms,
                error=error,
            )

        return wrapper

    return decorator
