"""
Fleet aggregate document model.

One ``FleetAggregate`` holds every path and drone instance of a fleet. All
writes are read-modify-write cycles against the whole aggregate, so the
model exposes in-place mutators and a plain-dict persisted layout:

    {"name": ..., "paths": [...], "drones": [...], "created_at": ...}

Sub-entities are addressed by id through a per-collection index
(id -> list position) maintained by the add methods. Lookups are O(1);
the index is rebuilt when an aggregate is loaded from its persisted form.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from fleet.errors import InvalidInput, NotFound

# A waypoint: [lat, lon] or [x, y] (extra dimensions are kept verbatim)
Coordinate = List[float]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, datetime, None]) -> datetime:
    """Parse a persisted timestamp; naive values are taken as UTC."""
    if value is None:
        return utcnow()
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class Path:
    """A named, ordered sequence of waypoints."""
    id: str
    name: str
    coordinates: List[Coordinate] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def waypoint_count(self) -> int:
        return len(self.coordinates)

    def append_waypoint(self, coordinate: Sequence[float]) -> None:
        """Append one waypoint at the end. No reordering, no dedup."""
        self.coordinates.append(list(coordinate))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "coordinates": [list(c) for c in self.coordinates],
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Path':
        return cls(
            id=data["id"],
            name=data["name"],
            coordinates=[list(c) for c in data.get("coordinates", [])],
            created_at=parse_timestamp(data.get("created_at")),
        )


@dataclass
class DroneInstance:
    """
    A fleet member and its playback state.

    ``current_path_id`` is a weak reference: it is stored as given and never
    checked against the aggregate's paths. ``current_position`` is opaque
    state with no enforced unit or bounds.
    """
    id: str
    name: str
    color: str
    current_path_id: Optional[str] = None
    current_position: float = 0
    is_active: bool = False

    def move_to(self, path_id: Optional[str], position: float) -> None:
        self.current_path_id = path_id
        self.current_position = position

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "current_path_id": self.current_path_id,
            "current_position": self.current_position,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DroneInstance':
        return cls(
            id=data["id"],
            name=data["name"],
            color=data["color"],
            current_path_id=data.get("current_path_id"),
            current_position=data.get("current_position", 0),
            is_active=bool(data.get("is_active", False)),
        )


@dataclass
class FleetAggregate:
    """The single record holding a fleet's paths and drone instances."""
    fleet_key: str
    name: str
    paths: List[Path] = field(default_factory=list)
    drones: List[DroneInstance] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    # 0 = never persisted; bumped by the repository on every save
    version: int = 0

    _path_index: Dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)
    _drone_index: Dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        self._path_index = _build_index(self.paths, "path")
        self._drone_index = _build_index(self.drones, "drone")

    @property
    def is_new(self) -> bool:
        return self.version == 0

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def path_ids(self):
        return self._path_index.keys()

    def next_path_name(self) -> str:
        return f"Path {len(self.paths) + 1}"

    def add_path(self, path: Path) -> Path:
        if path.id in self._path_index:
            raise InvalidInput(f"Duplicate path id: {path.id}")
        self._path_index[path.id] = len(self.paths)
        self.paths.append(path)
        return path

    def find_path(self, path_id: str) -> Optional[Path]:
        idx = self._path_index.get(path_id)
        return None if idx is None else self.paths[idx]

    def get_path(self, path_id: str) -> Path:
        path = self.find_path(path_id)
        if path is None:
            raise NotFound(f"Path not found: {path_id}")
        return path

    # ------------------------------------------------------------------
    # Drones
    # ------------------------------------------------------------------

    @property
    def drone_ids(self):
        return self._drone_index.keys()

    def next_drone_name(self) -> str:
        return f"Drone {len(self.drones) + 1}"

    def add_drone(self, drone: DroneInstance) -> DroneInstance:
        if drone.id in self._drone_index:
            raise InvalidInput(f"Duplicate drone id: {drone.id}")
        self._drone_index[drone.id] = len(self.drones)
        self.drones.append(drone)
        return drone

    def find_drone(self, drone_id: str) -> Optional[DroneInstance]:
        idx = self._drone_index.get(drone_id)
        return None if idx is None else self.drones[idx]

    def get_drone(self, drone_id: str) -> DroneInstance:
        drone = self.find_drone(drone_id)
        if drone is None:
            raise NotFound(f"Drone instance not found: {drone_id}")
        return drone

    # ------------------------------------------------------------------
    # Persisted layout
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "paths": [p.to_dict() for p in self.paths],
            "drones": [d.to_dict() for d in self.drones],
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, fleet_key: str, data: Dict[str, Any], version: int = 0) -> 'FleetAggregate':
        return cls(
            fleet_key=fleet_key,
            name=data["name"],
            paths=[Path.from_dict(p) for p in data.get("paths", [])],
            drones=[DroneInstance.from_dict(d) for d in data.get("drones", [])],
            created_at=parse_timestamp(data.get("created_at")),
            version=version,
        )

    def clone(self) -> 'FleetAggregate':
        """Deep copy, including version."""
        return FleetAggregate.from_dict(self.fleet_key, copy.deepcopy(self.to_dict()), self.version)


def _build_index(items: Iterable, label: str) -> Dict[str, int]:
    index: Dict[str, int] = {}
    for position, item in enumerate(items):
        if item.id in index:
            raise InvalidInput(f"Duplicate {label} id: {item.id}")
        index[item.id] = position
    return index
