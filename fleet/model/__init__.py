"""Fleet aggregate model: paths, drone instances and their identifiers."""

from .aggregate import Coordinate, DroneInstance, FleetAggregate, Path
from .colors import is_generated_color, random_color
from .identifiers import IdentifierAllocator, SequentialIdentifierAllocator

__all__ = [
    "Coordinate",
    "DroneInstance",
    "FleetAggregate",
    "Path",
    "IdentifierAllocator",
    "SequentialIdentifierAllocator",
    "is_generated_color",
    "random_color",
]
