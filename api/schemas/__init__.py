"""
DRONEFLEET API Pydantic schemas.

Re-exports all schema classes:
    from api.schemas import PathModel, CreateDroneRequest, ...
"""

# Common
from .common import ErrorResponse, Waypoint  # noqa: F401

# Fleet
from .fleet import (  # noqa: F401
    PathModel,
    DroneModel,
    FleetModel,
    PathsAndDronesResponse,
    CreatePathRequest,
    PathCreatedResponse,
    AppendWaypointRequest,
    PathResponse,
    CreateDroneRequest,
    UpdateDronePositionRequest,
    DroneResponse,
    TimelineEntryModel,
)

# Places
from .places import PlaceResultModel  # noqa: F401
