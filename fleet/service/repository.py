"""
Aggregate repositories.

A repository loads and saves whole ``FleetAggregate`` records keyed by
fleet key. Saves are compare-and-swap on ``version``: a save succeeds only
if the stored version still equals the version the aggregate was loaded
with, otherwise ``ConcurrencyConflict`` is raised and nothing is written.
On success the aggregate's version is bumped in place.
"""

import copy
import logging
import threading
from typing import Dict, Optional, Tuple

from fleet.errors import ConcurrencyConflict
from fleet.model import FleetAggregate

logger = logging.getLogger(__name__)


class AggregateRepository:
    """Persistence boundary for fleet aggregates."""

    def load(self, fleet_key: str) -> Optional[FleetAggregate]:
        """Return the stored aggregate, or None if the key has no record."""
        raise NotImplementedError

    def save(self, aggregate: FleetAggregate) -> FleetAggregate:
        """
        Persist the aggregate if its version is current.

        A new aggregate (version 0) is inserted; the insert conflicts if a
        record for the key already exists.

        Raises:
            ConcurrencyConflict: The stored version moved on since load
            PersistenceError: The store could not be written
        """
        raise NotImplementedError


class InMemoryAggregateRepository(AggregateRepository):
    """
    Process-local repository holding deep-copied snapshots.

    Callers never share objects with the store, so an unsaved mutation is
    invisible to other readers, as with a database.
    """

    def __init__(self):
        self._records: Dict[str, Tuple[int, dict]] = {}
        self._lock = threading.Lock()

    def load(self, fleet_key: str) -> Optional[FleetAggregate]:
        with self._lock:
            stored = self._records.get(fleet_key)
            if stored is None:
                return None
            version, data = stored
            return FleetAggregate.from_dict(fleet_key, copy.deepcopy(data), version)

    def save(self, aggregate: FleetAggregate) -> FleetAggregate:
        with self._lock:
            stored = self._records.get(aggregate.fleet_key)
            stored_version = stored[0] if stored is not None else 0
            if stored_version != aggregate.version:
                raise ConcurrencyConflict(aggregate.fleet_key, aggregate.version)

            new_version = aggregate.version + 1
            self._records[aggregate.fleet_key] = (new_version, copy.deepcopy(aggregate.to_dict()))
            aggregate.version = new_version

        logger.debug(f"Saved fleet '{aggregate.fleet_key}' at version {new_version}")
        return aggregate

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
