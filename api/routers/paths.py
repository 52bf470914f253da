"""
Flight paths API router.

Handles path file upload, path creation from waypoints, listing, and
waypoint appends.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from api.config import settings
from api.schemas import (
    AppendWaypointRequest,
    CreatePathRequest,
    ErrorResponse,
    DroneModel,
    FleetModel,
    PathCreatedResponse,
    PathModel,
    PathResponse,
    PathsAndDronesResponse,
)
from api.state import get_fleet_service
from fleet.errors import InvalidInput
from fleet.paths.path_file import parse_path_bytes, validate_waypoint, validate_waypoints

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Paths"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


def _path_created(path, fleet) -> PathCreatedResponse:
    return PathCreatedResponse(
        path=PathModel.model_validate(path),
        fleet=FleetModel.model_validate(fleet),
    )


@router.post("/upload", response_model=PathCreatedResponse)
async def upload_path(
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    service=Depends(get_fleet_service),
):
    """
    Upload a path file and add it to the fleet.

    The file is JSON: a waypoint array, an object with ``coordinates``,
    or a GeoJSON Feature. Without a name the path is called "Path {n}".
    """
    content = await file.read()

    if len(content) > settings.max_upload_size_bytes:
        raise InvalidInput(
            f"File too large. Maximum size: {settings.max_upload_size_bytes // (1024 * 1024)} MB"
        )

    coordinates = parse_path_bytes(content)
    # The write blocks on the fleet lock and on retry backoff
    path, fleet = await asyncio.to_thread(service.create_path_with_fleet, coordinates, name)
    logger.info(f"Uploaded path file {file.filename!r} as path {path.id}")
    return _path_created(path, fleet)


@router.post("/paths", response_model=PathCreatedResponse)
def create_path(body: CreatePathRequest, service=Depends(get_fleet_service)):
    """Create a path from a JSON waypoint list."""
    coordinates = validate_waypoints(body.coordinates)
    path, fleet = service.create_path_with_fleet(coordinates, name=body.name)
    return _path_created(path, fleet)


@router.get("/paths", response_model=PathsAndDronesResponse)
def list_paths(service=Depends(get_fleet_service)):
    """All paths and drones, in insertion order."""
    fleet = service.get_fleet()
    return PathsAndDronesResponse(
        paths=[PathModel.model_validate(p) for p in fleet.paths],
        drones=[DroneModel.model_validate(d) for d in fleet.drones],
    )


@router.get("/paths/{path_id}", response_model=PathModel)
def get_path(path_id: str, service=Depends(get_fleet_service)):
    return PathModel.model_validate(service.get_path(path_id))


@router.post("/paths/{path_id}/waypoints", response_model=PathResponse)
def append_waypoint(
    path_id: str,
    body: AppendWaypointRequest,
    service=Depends(get_fleet_service),
):
    """Append one waypoint to the end of a path."""
    coordinate = validate_waypoint(body.coordinates)
    path = service.append_waypoint(path_id, coordinate)
    return PathResponse(path=PathModel.model_validate(path))
