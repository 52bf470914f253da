"""
Thread-safe state management for DRONEFLEET API.

Holds the process-wide objects shared by all requests: the fleet write
lock, the in-memory fleet store (when configured), and the place lookup
client. FleetService instances themselves are cheap and built per request
around a database session.
"""
import threading
import logging
from typing import Optional, Dict, Any
from datetime import datetime, timezone

from fastapi import Depends
from sqlalchemy.orm import Session

from api.config import settings
from api.database import get_db

logger = logging.getLogger(__name__)


class ApplicationState:
    """
    Singleton application state manager.

    Centralizes all shared state with proper thread safety.
    Use get_app_state() to access the singleton instance.
    """

    _instance: Optional['ApplicationState'] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls):
        """Ensure singleton pattern."""
        if cls._instance is None:
            with cls._lock:
                # Double-check locking
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize application state (only once)."""
        if self._initialized:
            return

        from fleet.service import InMemoryAggregateRepository

        self._initialized = True
        # Serializes fleet read-modify-write cycles within this process
        self.fleet_write_lock = threading.RLock()
        self.memory_repository = InMemoryAggregateRepository()
        self._places_client = None
        self._startup_time = datetime.now(timezone.utc)

        logger.info("Application state initialized")

    @property
    def places_client(self):
        """Get the place lookup client (lazy initialization)."""
        if self._places_client is None:
            from api.places import PlaceLookupClient
            self._places_client = PlaceLookupClient.from_settings(settings)
        return self._places_client

    @places_client.setter
    def places_client(self, client):
        self._places_client = client

    @property
    def uptime_seconds(self) -> float:
        """Get application uptime in seconds."""
        return (datetime.now(timezone.utc) - self._startup_time).total_seconds()

    def health_check(self) -> Dict[str, Any]:
        return {
            'fleet_store': settings.fleet_store,
            'fleet_key': settings.fleet_key,
            'uptime_seconds': self.uptime_seconds,
        }


def get_app_state() -> ApplicationState:
    """
    Get the application state singleton.

    Returns:
        ApplicationState: The singleton application state instance
    """
    return ApplicationState()


def build_fleet_service(db: Optional[Session] = None):
    """
    Build a FleetService over the configured store.

    Args:
        db: Session for the database store (ignored for the memory store)
    """
    from api.repository import SqlAggregateRepository
    from fleet.service import FleetService

    state = get_app_state()
    if settings.uses_memory_store:
        repository = state.memory_repository
    else:
        if db is None:
            raise ValueError("A database session is required for the database fleet store")
        repository = SqlAggregateRepository(db)

    return FleetService(
        repository=repository,
        fleet_key=settings.fleet_key,
        default_name=settings.default_fleet_name,
        lock=state.fleet_write_lock,
        max_write_attempts=settings.write_conflict_retries + 1,
    )


def get_fleet_service(db: Session = Depends(get_db)):
    """FastAPI dependency: FleetService bound to the request's session."""
    return build_fleet_service(db)


def get_places_client():
    """FastAPI dependency: the shared place lookup client."""
    return get_app_state().places_client
