"""Fleet (paths, drones, timeline) API schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import Waypoint


class PathModel(BaseModel):
    """A flight path."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    coordinates: List[Waypoint]
    created_at: datetime


class DroneModel(BaseModel):
    """A drone instance and its playback state."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    color: str
    current_path_id: Optional[str] = None
    current_position: float = 0
    is_active: bool = False


class FleetModel(BaseModel):
    """The whole fleet aggregate."""
    model_config = ConfigDict(from_attributes=True)

    name: str
    paths: List[PathModel]
    drones: List[DroneModel]
    created_at: datetime
    version: int


class PathsAndDronesResponse(BaseModel):
    paths: List[PathModel]
    drones: List[DroneModel]


# =============================================================================
# Paths
# =============================================================================


class CreatePathRequest(BaseModel):
    """Create a path from a waypoint list."""
    name: Optional[str] = Field(None, max_length=200)
    coordinates: List[List[float]] = Field(
        ..., description="Ordered waypoints, each [lat, lon] (may be empty)"
    )


class PathCreatedResponse(BaseModel):
    success: bool = True
    message: str = "Path uploaded successfully"
    path: PathModel
    fleet: FleetModel


class AppendWaypointRequest(BaseModel):
    """One waypoint to append to a path."""
    coordinates: List[float] = Field(..., min_length=2, description="[lat, lon]")


class PathResponse(BaseModel):
    success: bool = True
    path: PathModel


# =============================================================================
# Drones
# =============================================================================


class CreateDroneRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = Field(None, max_length=32, description="CSS color; random if omitted")


class UpdateDronePositionRequest(BaseModel):
    """
    New path reference and position for a drone.

    ``path_id`` is not checked against existing paths and ``position`` is
    not bounds-checked.
    """
    path_id: Optional[str] = None
    position: float = Field(..., allow_inf_nan=False)


class DroneResponse(BaseModel):
    success: bool = True
    drone: DroneModel


# =============================================================================
# Timeline
# =============================================================================


class TimelineEntryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    duration: int = Field(..., description="Number of waypoints in the path")
    created_at: datetime
