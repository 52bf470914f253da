"""Fleet service layer: operations, repositories and derived views."""

from .fleet_service import DEFAULT_FLEET_KEY, DEFAULT_FLEET_NAME, FleetService
from .repository import AggregateRepository, InMemoryAggregateRepository
from .timeline import TimelineEntry, compute_timeline

__all__ = [
    "DEFAULT_FLEET_KEY",
    "DEFAULT_FLEET_NAME",
    "FleetService",
    "AggregateRepository",
    "InMemoryAggregateRepository",
    "TimelineEntry",
    "compute_timeline",
]
