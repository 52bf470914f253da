"""
SQLAlchemy models for DRONEFLEET database.
"""

from sqlalchemy import (
    Column,
    String,
    Integer,
    DateTime,
    JSON,
)
from sqlalchemy.dialects.postgresql import UUID
from datetime import datetime, timezone
import uuid

from api.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class FleetRecord(Base):
    """
    One fleet aggregate, stored as a single document row.

    Paths and drone instances are embedded JSON arrays; the whole row is
    rewritten on every save. ``version`` is the optimistic-concurrency
    counter checked by SqlAggregateRepository.
    """

    __tablename__ = "fleet_records"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    fleet_key = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    paths = Column(JSON, nullable=False, default=list)
    drones = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    def __repr__(self):
        return f"<FleetRecord(fleet_key='{self.fleet_key}', version={self.version})>"
