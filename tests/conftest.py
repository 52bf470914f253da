"""
Shared pytest fixtures for DRONEFLEET tests.

CRITICAL: Database patching must occur at module-import time so SQLite
engine creation (without pool_size/max_overflow params) happens before
api.database is imported anywhere. The _patched_create_engine wrapper
strips pool params that are invalid for SQLite.
"""

import os
import sys
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# ---------------------------------------------------------------------------
# Section 1: Environment setup (before ANY api.* imports)
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DB_ECHO", "false")
os.environ.setdefault("FLEET_STORE", "database")
os.environ.setdefault("LOG_LEVEL", "warning")

# ---------------------------------------------------------------------------
# Section 2: Patch SQLAlchemy engine creation for SQLite compatibility
# ---------------------------------------------------------------------------
from sqlalchemy import create_engine as _real_create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


def _patched_create_engine(url, **kwargs):
    """Create engine, stripping pool params invalid for SQLite.

    Uses StaticPool so all connections share the same in-memory database.
    """
    if str(url).startswith("sqlite"):
        kwargs.pop("pool_size", None)
        kwargs.pop("max_overflow", None)
        kwargs.pop("pool_pre_ping", None)
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        kwargs["poolclass"] = StaticPool
    return _real_create_engine(url, **kwargs)


# Apply patch before api.database is imported
_patcher = patch("sqlalchemy.create_engine", _patched_create_engine)
_patcher.start()

# Clear any cached api.database imports so patch takes effect
for _mod in list(sys.modules.keys()):
    if _mod.startswith("api.database"):
        del sys.modules[_mod]

from api.database import Base, get_db, engine as test_engine  # noqa: E402
import api.models  # noqa: E402,F401  ensure all ORM models are registered

TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=test_engine
)
Base.metadata.create_all(bind=test_engine)

from fleet.model import SequentialIdentifierAllocator  # noqa: E402
from fleet.service import FleetService, InMemoryAggregateRepository  # noqa: E402

# ---------------------------------------------------------------------------
# Section 3: Core database + client fixtures
# ---------------------------------------------------------------------------


def _clear_tables():
    with test_engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture
def db():
    """Create a test database session; all rows are deleted afterwards.

    The repository commits and rolls back on its own, so isolation is by
    cleanup rather than an outer transaction.
    """
    session = TestingSessionLocal()

    yield session

    session.close()
    _clear_tables()


@pytest.fixture
def client(db):
    """Create a FastAPI TestClient with database dependency override."""
    from api.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Section 4: Fleet service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_repository():
    return InMemoryAggregateRepository()


@pytest.fixture
def service(memory_repository):
    """FleetService over a fresh in-memory store with predictable ids."""
    return FleetService(
        repository=memory_repository,
        allocator=SequentialIdentifierAllocator(),
        color_factory=lambda: "#00ff00",
    )


@pytest.fixture
def sql_service(db):
    """FleetService over the test database."""
    from api.repository import SqlAggregateRepository

    return FleetService(
        repository=SqlAggregateRepository(db),
        allocator=SequentialIdentifierAllocator(),
    )


# ---------------------------------------------------------------------------
# Section 5: Place search helpers + fixtures
# ---------------------------------------------------------------------------


def _make_geocoding_response(features=None, status_code=200, json_error=None):
    """Build a mock requests.Response for the Mapbox geocoding endpoint."""
    import requests

    response = MagicMock()
    response.status_code = status_code
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} Error", response=response
        )
    else:
        response.raise_for_status.return_value = None
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = {
            "type": "FeatureCollection",
            "features": features if features is not None else [],
        }
    return response


@pytest.fixture
def sample_features():
    """Two Mapbox features; ``center`` is [lon, lat]."""
    return [
        {
            "id": "place.123",
            "place_name": "Zurich, Switzerland",
            "center": [8.5417, 47.3769],
        },
        {
            "id": "poi.456",
            "place_name": "Zurich Airport, Kloten, Switzerland",
            "center": [8.5492, 47.4582],
        },
    ]


@pytest.fixture
def breaker():
    """A private circuit breaker so tests never trip the shared one."""
    from api.resilience import CircuitBreaker

    return CircuitBreaker(name="test_geocoding", failure_threshold=2, recovery_timeout=60)


@pytest.fixture
def geocoding_session():
    """Mock requests.Session; set .get.return_value / side_effect per test."""
    return MagicMock()


@pytest.fixture
def places_client(geocoding_session, breaker):
    from api.places import PlaceLookupClient

    return PlaceLookupClient(
        access_token="pk.test-token",
        base_url="https://geocoding.test/mapbox.places",
        session=geocoding_session,
        breaker=breaker,
    )


@pytest.fixture
def geocoding_response():
    """Factory fixture: geocoding_response(features, status_code=..., json_error=...)."""
    return _make_geocoding_response
