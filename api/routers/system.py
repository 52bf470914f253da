"""
System / health API router.

Handles health checks, detailed status, and the root endpoint.
"""

import logging

from fastapi import APIRouter, HTTPException

from api.health import API_VERSION
from api.middleware import get_request_id

router = APIRouter(tags=["System"])

logger = logging.getLogger(__name__)


@router.get("/")
async def root():
    """
    API root endpoint.

    Returns basic API information and available endpoint categories.
    """
    return {
        "name": "DRONEFLEET API",
        "version": API_VERSION,
        "status": "operational",
        "docs": "/api/docs",
        "endpoints": {
            "health": "/api/health",
            "paths": "/api/paths",
            "drones": "/api/drones",
            "timeline": "/api/timeline",
            "fleet": "/api/fleet",
            "search": "/api/search",
        }
    }


@router.get("/api/health")
async def health_check():
    """
    Comprehensive health check endpoint for load balancers and orchestrators.

    Returns:
        - status: Overall health status (healthy/degraded/unhealthy)
        - timestamp: Current UTC timestamp
        - version: API version
        - components: Individual component health status
    """
    from api.health import perform_full_health_check
    result = await perform_full_health_check()
    result["request_id"] = get_request_id()
    return result


@router.get("/api/health/live")
async def liveness_check():
    """Kubernetes liveness probe endpoint."""
    from api.health import perform_liveness_check
    return await perform_liveness_check()


@router.get("/api/health/ready")
async def readiness_check():
    """
    Kubernetes readiness probe endpoint.

    Returns 503 while the fleet store is unreachable.
    """
    from api.health import perform_readiness_check
    result = await perform_readiness_check()

    if result.get("status") != "ready":
        raise HTTPException(status_code=503, detail="Service not ready")

    return result


@router.get("/api/status")
async def detailed_status():
    """Detailed system status: health, uptime, circuit breakers, store config."""
    from api.health import get_detailed_status
    return await get_detailed_status()
