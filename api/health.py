"""
Health check module for DRONEFLEET API.

Provides health checks for the fleet store and the place search
collaborator. Designed for Kubernetes liveness/readiness probes and load
balancer health checks.
"""
import logging
import time
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from enum import Enum
from dataclasses import dataclass

from sqlalchemy import text

from api.config import settings
from api.resilience import get_all_circuit_breaker_status, places_breaker

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class HealthStatus(Enum):
    """Health check status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""
    name: str
    status: HealthStatus
    latency_ms: Optional[float] = None
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


def check_database_health() -> ComponentHealth:
    """
    Check fleet store connectivity.

    The in-memory store is always healthy; the database store runs
    ``SELECT 1``.
    """
    if settings.uses_memory_store:
        return ComponentHealth(
            name="fleet_store",
            status=HealthStatus.HEALTHY,
            message="In-memory fleet store",
        )

    start = time.perf_counter()

    try:
        from api.database import SessionLocal

        db = SessionLocal()
        try:
            result = db.execute(text("SELECT 1")).scalar()
            latency_ms = (time.perf_counter() - start) * 1000

            if result == 1:
                return ComponentHealth(
                    name="fleet_store",
                    status=HealthStatus.HEALTHY,
                    latency_ms=round(latency_ms, 2),
                    message="Database connected",
                )
            return ComponentHealth(
                name="fleet_store",
                status=HealthStatus.UNHEALTHY,
                message="Unexpected query result",
            )
        finally:
            db.close()

    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        logger.error(f"Database health check failed: {e}")
        return ComponentHealth(
            name="fleet_store",
            status=HealthStatus.UNHEALTHY,
            latency_ms=round(latency_ms, 2),
            message=f"Connection failed: {type(e).__name__}",
        )


def check_place_search_health() -> ComponentHealth:
    """
    Check place search status without calling upstream.

    Degraded when no access token is configured or the circuit is open.
    Place search is optional, so it never makes the service unhealthy.
    """
    if not settings.has_mapbox_credentials:
        return ComponentHealth(
            name="place_search",
            status=HealthStatus.DEGRADED,
            message="MAPBOX_ACCESS_TOKEN not configured",
        )

    if places_breaker.is_open:
        return ComponentHealth(
            name="place_search",
            status=HealthStatus.DEGRADED,
            message="Circuit open after repeated upstream failures",
            details=places_breaker.get_status(),
        )

    return ComponentHealth(
        name="place_search",
        status=HealthStatus.HEALTHY,
        message="Mapbox geocoding configured",
    )


async def perform_full_health_check() -> Dict[str, Any]:
    """
    Perform comprehensive health check of all components.

    Returns:
        Dict with overall status and component details
    """
    start = time.perf_counter()

    components = [check_database_health(), check_place_search_health()]

    unhealthy_count = sum(1 for c in components if c.status == HealthStatus.UNHEALTHY)
    degraded_count = sum(1 for c in components if c.status == HealthStatus.DEGRADED)

    if unhealthy_count > 0:
        overall_status = HealthStatus.UNHEALTHY
    elif degraded_count > 0:
        overall_status = HealthStatus.DEGRADED
    else:
        overall_status = HealthStatus.HEALTHY

    total_time_ms = (time.perf_counter() - start) * 1000

    return {
        "status": overall_status.value,
        "timestamp": _timestamp(),
        "version": API_VERSION,
        "check_duration_ms": round(total_time_ms, 2),
        "components": {
            c.name: {
                "status": c.status.value,
                "latency_ms": c.latency_ms,
                "message": c.message,
                **({"details": c.details} if c.details else {}),
            }
            for c in components
        },
    }


async def perform_liveness_check() -> Dict[str, Any]:
    """Simple liveness check; does not touch dependencies."""
    return {
        "status": "alive",
        "timestamp": _timestamp(),
    }


async def perform_readiness_check() -> Dict[str, Any]:
    """
    Readiness check: the service is ready once the fleet store answers.
    """
    store_health = check_database_health()
    is_ready = store_health.status == HealthStatus.HEALTHY

    return {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": _timestamp(),
        "fleet_store": store_health.status.value,
    }


async def get_detailed_status() -> Dict[str, Any]:
    """
    Get detailed system status including circuit breakers and store config.
    """
    from api.state import get_app_state

    health = await perform_full_health_check()
    app_state = get_app_state()

    return {
        **health,
        "uptime_seconds": round(app_state.uptime_seconds, 2),
        "environment": settings.environment,
        "circuit_breakers": get_all_circuit_breaker_status(),
        "config": app_state.health_check(),
    }
