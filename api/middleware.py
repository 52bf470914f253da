"""
Request middleware for DRONEFLEET API.

Provides:
- Request ID tracking for distributed tracing
- Structured logging with correlation IDs
- Error handling and sanitization
"""
import time
import uuid
import logging
import json
from typing import Callable, Optional
from contextvars import ContextVar
from datetime import datetime, timezone

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response, JSONResponse
from fastapi import FastAPI

# Context variable for request ID (thread-safe)
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return request_id_ctx.get()


class StructuredLogger:
    """
    Structured JSON logger for production environments.

    Outputs logs in JSON format with consistent fields for log aggregation.
    """

    def __init__(self, name: str, service: str = "dronefleet-api"):
        self.logger = logging.getLogger(name)
        self.service = service

    def _log(self, level: str, message: str, **kwargs):
        """Internal log method with structured output."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "message": message,
            "service": self.service,
            "request_id": get_request_id(),
            **kwargs
        }

        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        getattr(self.logger, level.lower())(json.dumps(log_entry, default=str))

    def info(self, message: str, **kwargs):
        self._log("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log("ERROR", message, **kwargs)

    def debug(self, message: str, **kwargs):
        self._log("DEBUG", message, **kwargs)


# Global structured logger instance
structured_logger = StructuredLogger("dronefleet")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Adds unique request ID to each request for distributed tracing.

    The request ID is:
    - Generated as a UUID4 if not provided
    - Accepted from X-Request-ID header if provided
    - Added to response headers for client correlation
    - Available via get_request_id() for logging
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)

        try:
            response = await call_next(request)
            response.headers[self.HEADER_NAME] = request_id
            return response
        finally:
            request_id_ctx.reset(token)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs all requests with timing, status and client address."""

    # Paths to exclude from logging (health probes)
    EXCLUDED_PATHS = {"/api/health", "/api/health/live", "/api/health/ready"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000

            structured_logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                query=str(request.query_params) if request.query_params else None,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
                client_ip=client_ip,
            )

            return response

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000

            structured_logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round(duration_ms, 2),
                client_ip=client_ip,
            )
            raise


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling with sanitized responses.

    Fleet domain errors are converted by exception handlers in api.main;
    anything reaching this middleware is unexpected and returned as a 500
    carrying the request ID. Full details only in debug mode.
    """

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            request_id = get_request_id()

            structured_logger.error(
                "Unhandled exception",
                error=str(e),
                error_type=type(e).__name__,
                path=request.url.path,
                method=request.method,
            )

            if self.debug:
                detail = str(e)
            else:
                detail = "An internal error occurred. Please contact support with the request ID."

            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "error": "InternalError",
                    "message": detail,
                    "request_id": request_id,
                },
                headers={"X-Request-ID": request_id} if request_id else {},
            )


def setup_middleware(app: FastAPI, debug: bool = False):
    """
    Configure request middleware for the application.

    Args:
        app: FastAPI application instance
        debug: Enable debug mode (detailed error messages)

    Order matters! Middleware is executed in reverse order of addition.
    """
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    app.add_middleware(RequestIdMiddleware)
