"""
Drone instances API router.

Handles drone creation, lookup, and position updates.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from api.schemas import (
    CreateDroneRequest,
    DroneModel,
    DroneResponse,
    ErrorResponse,
    UpdateDronePositionRequest,
)
from api.state import get_fleet_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/drones",
    tags=["Drones"],
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)


@router.post("", response_model=DroneResponse)
def create_drone(body: CreateDroneRequest, service=Depends(get_fleet_service)):
    """
    Add a drone to the fleet.

    Without a name the drone is called "Drone {n}"; without a color a
    random one is assigned. New drones are inactive at position 0 with no
    path.
    """
    drone = service.create_drone(name=body.name, color=body.color)
    return DroneResponse(drone=DroneModel.model_validate(drone))


@router.get("", response_model=List[DroneModel])
def list_drones(service=Depends(get_fleet_service)):
    return [DroneModel.model_validate(d) for d in service.list_drones()]


@router.get("/{drone_id}", response_model=DroneModel)
def get_drone(drone_id: str, service=Depends(get_fleet_service)):
    return DroneModel.model_validate(service.get_drone(drone_id))


@router.put("/{drone_id}/position", response_model=DroneResponse)
def update_drone_position(
    drone_id: str,
    body: UpdateDronePositionRequest,
    service=Depends(get_fleet_service),
):
    """
    Set a drone's current path and position.

    Returns 404 only for an unknown drone. The path id is stored as given,
    whether or not such a path exists.
    """
    drone = service.update_drone_position(drone_id, body.path_id, body.position)
    return DroneResponse(drone=DroneModel.model_validate(drone))
