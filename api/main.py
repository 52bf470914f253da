"""
FastAPI Backend for DRONEFLEET.

Provides REST API endpoints for:
- Flight path upload and waypoint editing
- Drone instance management and playback positions
- Timeline summaries for path playback
- Place search for map navigation

Version: 1.0.0
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from api.config import settings
from api.health import API_VERSION
from api.middleware import setup_middleware, get_request_id
from api.routers import drones, paths, places, system, timeline
from api.state import get_app_state
from fleet.errors import (
    FleetError,
    InvalidInput,
    NotFound,
    PersistenceError,
    UpstreamError,
)

# Configure structured logging for production
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(message)s',  # JSON logs are self-contained
)
logger = logging.getLogger(__name__)

# Checked in order; subclasses before their bases
ERROR_STATUS_CODES = (
    (InvalidInput, 400),
    (NotFound, 404),
    (UpstreamError, 502),
    (PersistenceError, 503),
)


def status_code_for(exc: FleetError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


def error_response(status_code: int, error: str, message: str, **extra) -> JSONResponse:
    request_id = get_request_id()
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
            "message": message,
            "request_id": request_id,
            **extra,
        },
        headers={"X-Request-ID": request_id} if request_id else {},
    )


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """
    Application factory for DRONEFLEET API.

    Creates and configures the FastAPI application with all middleware,
    routes, and exception handlers.

    Returns:
        FastAPI: Configured application instance
    """
    application = FastAPI(
        title="DRONEFLEET API",
        description="""
## Drone Flight Path Planning API

Upload flight paths, manage a fleet of drone instances, and drive
path playback from a shared fleet record.

### Features
- Path upload from JSON / GeoJSON files
- Waypoint editing
- Drone instances with per-drone playback position
- Timeline summaries
- Place search (Mapbox geocoding proxy)
        """,
        version=API_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    setup_middleware(application, debug=settings.is_development)

    # CORS middleware - use configured origins only
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_credentials,
        allow_methods=settings.cors_methods_list,
        allow_headers=settings.cors_headers_list,
    )

    @application.exception_handler(FleetError)
    async def fleet_error_handler(request: Request, exc: FleetError):
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
        return error_response(status_code, exc.kind, exc.message)

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        logger.info(f"Validation error on {request.method} {request.url.path}: {errors}")
        detail = [
            {
                "loc": list(err.get("loc", ())),
                "msg": err.get("msg", ""),
                "type": err.get("type", ""),
            }
            for err in errors
        ]
        return error_response(
            422,
            InvalidInput.kind,
            "Request validation failed",
            detail=detail,
        )

    @application.on_event("startup")
    async def startup_event():
        """Create tables for the database store and warm the shared state."""
        if not settings.uses_memory_store:
            from api.database import init_db
            init_db()
        get_app_state()
        logger.info(f"DRONEFLEET API started (fleet store: {settings.fleet_store})")

    application.include_router(system.router)
    application.include_router(paths.router)
    application.include_router(drones.router)
    application.include_router(timeline.router)
    application.include_router(places.router)

    return application


# Create the application
app = create_app()


# ============================================================================
# Run Server
# ============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
