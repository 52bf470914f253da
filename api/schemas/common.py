"""Common shared schemas used across multiple domains."""

from typing import Any, List, Optional

from pydantic import BaseModel, Field

# A waypoint: [lat, lon] or [x, y], optionally with extra dimensions
Waypoint = List[float]


class ErrorResponse(BaseModel):
    """Structured failure result returned for every handled error."""
    success: bool = False
    error: str = Field(..., description="InvalidInput, NotFound, UpstreamError, PersistenceError")
    message: str
    request_id: Optional[str] = None
    detail: Optional[List[Any]] = None
