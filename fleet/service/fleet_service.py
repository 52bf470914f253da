"""
Fleet service: the operation surface over the fleet aggregate.

Every operation first loads (or lazily creates) the aggregate for the
configured fleet key, resolves referenced sub-entities by id, then either
computes a view or mutates the aggregate and saves it whole.

Writes are protected twice:
- a lock serializes read-modify-write cycles inside the process;
- the repository's version check rejects stale saves from other processes,
  in which case the whole cycle is re-run (bounded, via tenacity).
"""

import logging
import threading
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fleet.errors import ConcurrencyConflict, InvalidInput, PersistenceError
from fleet.model import (
    Coordinate,
    DroneInstance,
    FleetAggregate,
    IdentifierAllocator,
    Path,
    random_color,
)
from fleet.model.aggregate import utcnow
from fleet.service.repository import AggregateRepository
from fleet.service.timeline import TimelineEntry, compute_timeline

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_FLEET_KEY = "default"
DEFAULT_FLEET_NAME = "Default Drone"


class FleetService:
    """
    Operations on one fleet aggregate.

    Args:
        repository: Where the aggregate is loaded from and saved to
        fleet_key: Key of the aggregate this service operates on
        default_name: Display name given to a lazily created aggregate
        allocator: Id allocator for new paths and drones
        color_factory: Produces a color when create_drone gets none
        lock: Lock serializing writes; share one per process
        max_write_attempts: Read-modify-write attempts on version conflicts
    """

    def __init__(
        self,
        repository: AggregateRepository,
        fleet_key: str = DEFAULT_FLEET_KEY,
        default_name: str = DEFAULT_FLEET_NAME,
        allocator: Optional[IdentifierAllocator] = None,
        color_factory: Callable[[], str] = random_color,
        lock: Optional[threading.RLock] = None,
        max_write_attempts: int = 3,
    ):
        self.repository = repository
        self.fleet_key = fleet_key
        self.default_name = default_name
        self.allocator = allocator or IdentifierAllocator()
        self.color_factory = color_factory
        self._lock = lock or threading.RLock()
        self.max_write_attempts = max(1, max_write_attempts)

    # =========================================================================
    # Aggregate access
    # =========================================================================

    def load_or_create_aggregate(self) -> FleetAggregate:
        """Return the fleet aggregate, creating and persisting a default one if absent."""
        aggregate = self.repository.load(self.fleet_key)
        if aggregate is not None:
            return aggregate

        aggregate = FleetAggregate(fleet_key=self.fleet_key, name=self.default_name)
        try:
            self.repository.save(aggregate)
        except ConcurrencyConflict:
            # Another writer created the record between our load and save
            existing = self.repository.load(self.fleet_key)
            if existing is None:
                raise PersistenceError(f"Fleet '{self.fleet_key}' could not be created")
            return existing

        logger.info(f"Created fleet '{self.fleet_key}' ({self.default_name})")
        return aggregate

    def get_fleet(self) -> FleetAggregate:
        return self.load_or_create_aggregate()

    def _write(self, mutate: Callable[[FleetAggregate], T]) -> T:
        """Run mutate() inside a read-modify-write cycle and save the result."""
        retrying = Retrying(
            stop=stop_after_attempt(self.max_write_attempts),
            wait=wait_exponential(multiplier=0.01, max=0.2),
            retry=retry_if_exception_type(ConcurrencyConflict),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        with self._lock:
            for attempt in retrying:
                with attempt:
                    aggregate = self.load_or_create_aggregate()
                    result = mutate(aggregate)
                    self.repository.save(aggregate)
        return result

    # =========================================================================
    # Paths
    # =========================================================================

    def create_path(self, coordinates: Sequence[Coordinate], name: Optional[str] = None) -> Path:
        """
        Append a new path to the fleet.

        Args:
            coordinates: Ordered waypoints (may be empty)
            name: Display name; defaults to "Path {n}"

        Returns:
            The created path, with its assigned id
        """
        path, _ = self.create_path_with_fleet(coordinates, name=name)
        return path

    def create_path_with_fleet(
        self, coordinates: Sequence[Coordinate], name: Optional[str] = None
    ) -> Tuple[Path, FleetAggregate]:
        """Like create_path, but also return the fleet exactly as it was saved."""
        if coordinates is None:
            raise InvalidInput("coordinates are required")
        waypoints = [list(c) for c in coordinates]

        def mutate(aggregate: FleetAggregate) -> Tuple[Path, FleetAggregate]:
            path = Path(
                id=self.allocator.allocate(aggregate.path_ids),
                name=name or aggregate.next_path_name(),
                coordinates=[list(c) for c in waypoints],
                created_at=utcnow(),
            )
            return aggregate.add_path(path), aggregate

        path, fleet = self._write(mutate)
        logger.info(f"Created path {path.id} '{path.name}' with {path.waypoint_count} waypoints")
        return path, fleet

    def append_waypoint(self, path_id: str, coordinate: Coordinate) -> Path:
        """Append one waypoint to an existing path. Raises NotFound for unknown ids."""

        def mutate(aggregate: FleetAggregate) -> Path:
            path = aggregate.get_path(path_id)
            path.append_waypoint(coordinate)
            return path

        path = self._write(mutate)
        logger.info(f"Appended waypoint to path {path.id} (now {path.waypoint_count})")
        return path

    def list_paths(self) -> List[Path]:
        return list(self.load_or_create_aggregate().paths)

    def get_path(self, path_id: str) -> Path:
        return self.load_or_create_aggregate().get_path(path_id)

    # =========================================================================
    # Drones
    # =========================================================================

    def create_drone(self, name: Optional[str] = None, color: Optional[str] = None) -> DroneInstance:
        """Add a drone instance, parked (no path, position 0, inactive)."""

        def mutate(aggregate: FleetAggregate) -> DroneInstance:
            drone = DroneInstance(
                id=self.allocator.allocate(aggregate.drone_ids),
                name=name or aggregate.next_drone_name(),
                color=color or self.color_factory(),
            )
            return aggregate.add_drone(drone)

        drone = self._write(mutate)
        logger.info(f"Created drone {drone.id} '{drone.name}' ({drone.color})")
        return drone

    def update_drone_position(
        self, drone_id: str, path_id: Optional[str], position: float
    ) -> DroneInstance:
        """
        Set a drone's path reference and position.

        Only the drone id is checked. ``path_id`` is stored verbatim even if
        no such path exists, and ``position`` is not bounds-checked against
        the path: callers own referential integrity.
        """

        def mutate(aggregate: FleetAggregate) -> DroneInstance:
            drone = aggregate.get_drone(drone_id)
            drone.move_to(path_id, position)
            return drone

        drone = self._write(mutate)
        logger.info(f"Drone {drone.id} moved to path={path_id} position={position}")
        return drone

    def list_drones(self) -> List[DroneInstance]:
        return list(self.load_or_create_aggregate().drones)

    def get_drone(self, drone_id: str) -> DroneInstance:
        return self.load_or_create_aggregate().get_drone(drone_id)

    # =========================================================================
    # Views
    # =========================================================================

    def compute_timeline(self) -> List[TimelineEntry]:
        return compute_timeline(self.load_or_create_aggregate().paths)
