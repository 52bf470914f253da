"""
Timeline and fleet overview API router.
"""

from typing import List

from fastapi import APIRouter, Depends

from api.schemas import FleetModel, TimelineEntryModel
from api.state import get_fleet_service

router = APIRouter(prefix="/api", tags=["Timeline"])


@router.get("/timeline", response_model=List[TimelineEntryModel])
def get_timeline(service=Depends(get_fleet_service)):
    """Per-path playback summary: id, name, waypoint count, creation time."""
    return [TimelineEntryModel.model_validate(e) for e in service.compute_timeline()]


@router.get("/fleet", response_model=FleetModel)
def get_fleet(service=Depends(get_fleet_service)):
    """The whole fleet aggregate."""
    return FleetModel.model_validate(service.get_fleet())
