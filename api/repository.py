"""
SQLAlchemy-backed fleet aggregate repository.

Saves are a compare-and-swap on ``fleet_records.version``:

    UPDATE fleet_records SET ..., version = :expected + 1
    WHERE fleet_key = :key AND version = :expected

Zero affected rows means another writer saved first. New aggregates are
inserted; the unique constraint on ``fleet_key`` turns a racing insert into
the same conflict.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from api.models import FleetRecord
from fleet.errors import ConcurrencyConflict, PersistenceError
from fleet.model import FleetAggregate
from fleet.model.aggregate import parse_timestamp, utcnow
from fleet.service.repository import AggregateRepository

logger = logging.getLogger(__name__)


class SqlAggregateRepository(AggregateRepository):
    """Fleet aggregate persistence on a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def load(self, fleet_key: str) -> Optional[FleetAggregate]:
        try:
            record = (
                self.db.query(FleetRecord)
                .filter(FleetRecord.fleet_key == fleet_key)
                .one_or_none()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load fleet '{fleet_key}': {e}")
            raise PersistenceError(f"Could not read fleet '{fleet_key}'") from e

        if record is None:
            return None
        return _record_to_aggregate(record)

    def save(self, aggregate: FleetAggregate) -> FleetAggregate:
        if aggregate.is_new:
            self._insert(aggregate)
        else:
            self._update(aggregate)

        aggregate.version += 1
        return aggregate

    def _insert(self, aggregate: FleetAggregate) -> None:
        data = aggregate.to_dict()
        record = FleetRecord(
            fleet_key=aggregate.fleet_key,
            name=data["name"],
            paths=data["paths"],
            drones=data["drones"],
            version=1,
            created_at=aggregate.created_at,
        )
        try:
            self.db.add(record)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConcurrencyConflict(aggregate.fleet_key, aggregate.version)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create fleet '{aggregate.fleet_key}': {e}")
            raise PersistenceError(f"Could not write fleet '{aggregate.fleet_key}'") from e

    def _update(self, aggregate: FleetAggregate) -> None:
        data = aggregate.to_dict()
        try:
            updated = (
                self.db.query(FleetRecord)
                .filter(
                    FleetRecord.fleet_key == aggregate.fleet_key,
                    FleetRecord.version == aggregate.version,
                )
                .update(
                    {
                        FleetRecord.name: data["name"],
                        FleetRecord.paths: data["paths"],
                        FleetRecord.drones: data["drones"],
                        FleetRecord.version: aggregate.version + 1,
                        FleetRecord.updated_at: utcnow(),
                    },
                    synchronize_session=False,
                )
            )
            if updated == 0:
                self.db.rollback()
                raise ConcurrencyConflict(aggregate.fleet_key, aggregate.version)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save fleet '{aggregate.fleet_key}': {e}")
            raise PersistenceError(f"Could not write fleet '{aggregate.fleet_key}'") from e

        # Rows loaded earlier in this session are now stale
        self.db.expire_all()


def _record_to_aggregate(record: FleetRecord) -> FleetAggregate:
    return FleetAggregate.from_dict(
        record.fleet_key,
        {
            "name": record.name,
            "paths": record.paths or [],
            "drones": record.drones or [],
            "created_at": parse_timestamp(record.created_at),
        },
        version=record.version,
    )
