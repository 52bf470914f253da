"""
Resilience patterns for DRONEFLEET API.

Provides a circuit breaker for external service calls (place search).
Calls are never retried automatically; callers retry the whole operation.
"""
import logging
import functools
from typing import TypeVar, Callable, Optional
from datetime import datetime, timezone
from enum import Enum
from dataclasses import dataclass, field
import threading

logger = logging.getLogger(__name__)

T = TypeVar('T')


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitOpenError(Exception):
    """Raised when circuit breaker is open."""
    pass


@dataclass
class CircuitBreaker:
    """
    Thread-safe circuit breaker implementation.

    Prevents cascading failures by stopping calls to failing services
    and allowing them time to recover.

    Usage:
        breaker = CircuitBreaker(name="mapbox_geocoding")

        @breaker
        def call_external_service():
            ...
    """
    name: str
    failure_threshold: int = 5
    recovery_timeout: int = 60  # seconds
    half_open_max_calls: int = 3
    clock: Callable[[], datetime] = field(default=_utcnow, repr=False)

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _success_count: int = field(default=0, init=False)
    _last_failure_time: Optional[datetime] = field(default=None, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)
    _half_open_calls: int = field(default=0, init=False)

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        return self._check_state()

    @property
    def is_closed(self) -> bool:
        """Check if circuit is closed (normal operation)."""
        return self._check_state() == CircuitState.CLOSED

    @property
    def is_open(self) -> bool:
        """Check if circuit is open (rejecting calls)."""
        return self._check_state() == CircuitState.OPEN

    def _check_state(self) -> CircuitState:
        """Check and potentially transition circuit state."""
        with self._lock:
            if self._state == CircuitState.OPEN and self._last_failure_time:
                elapsed = (self.clock() - self._last_failure_time).total_seconds()
                if elapsed >= self.recovery_timeout:
                    self._transition_to_half_open()

            return self._state

    def _transition_to_half_open(self):
        self._state = CircuitState.HALF_OPEN
        self._half_open_calls = 0
        logger.info(f"Circuit breaker '{self.name}' transitioning to HALF_OPEN")

    def _transition_to_open(self):
        self._state = CircuitState.OPEN
        self._last_failure_time = self.clock()
        logger.warning(f"Circuit breaker '{self.name}' OPENED after {self._failure_count} failures")

    def _transition_to_closed(self):
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        logger.info(f"Circuit breaker '{self.name}' CLOSED - service recovered")

    def record_success(self):
        """Record a successful call."""
        with self._lock:
            self._success_count += 1

            if self._state == CircuitState.HALF_OPEN:
                self._half_open_calls += 1
                if self._half_open_calls >= self.half_open_max_calls:
                    self._transition_to_closed()
            elif self._state == CircuitState.CLOSED:
                # Reset failure count on success
                self._failure_count = max(0, self._failure_count - 1)

    def record_failure(self, error: Exception):
        """Record a failed call."""
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self.clock()

            logger.warning(f"Circuit breaker '{self.name}' recorded failure: {error}")

            if self._state == CircuitState.HALF_OPEN:
                # Any failure in half-open goes back to open
                self._transition_to_open()
            elif self._state == CircuitState.CLOSED:
                if self._failure_count >= self.failure_threshold:
                    self._transition_to_open()

    def reset(self):
        """Force the circuit closed and clear counters."""
        with self._lock:
            self._transition_to_closed()
            self._last_failure_time = None

    def __call__(self, func: Callable[..., T]) -> Callable[..., T]:
        """Decorator to wrap function with circuit breaker."""
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            state = self._check_state()

            if state == CircuitState.OPEN:
                raise CircuitOpenError(
                    f"Circuit breaker '{self.name}' is OPEN. "
                    f"Service unavailable, try again in {self.recovery_timeout}s"
                )

            try:
                result = func(*args, **kwargs)
                self.record_success()
                return result
            except Exception as e:
                self.record_failure(e)
                raise

        return wrapper

    def get_status(self) -> dict:
        """Get circuit breaker status."""
        with self._lock:
            return {
                'name': self.name,
                'state': self._state.value,
                'failure_count': self._failure_count,
                'success_count': self._success_count,
                'last_failure': self._last_failure_time.isoformat() if self._last_failure_time else None,
                'failure_threshold': self.failure_threshold,
                'recovery_timeout_seconds': self.recovery_timeout,
            }


places_breaker = CircuitBreaker(
    name="mapbox_geocoding",
    failure_threshold=5,
    recovery_timeout=60,
)


# Registry for all circuit breakers (for health monitoring)
_circuit_breaker_registry: dict[str, CircuitBreaker] = {}


def register_circuit_breaker(breaker: CircuitBreaker):
    """Register a circuit breaker for monitoring."""
    _circuit_breaker_registry[breaker.name] = breaker


def get_all_circuit_breaker_status() -> dict:
    """Get status of all registered circuit breakers."""
    return {
        name: breaker.get_status()
        for name, breaker in _circuit_breaker_registry.items()
    }


register_circuit_breaker(places_breaker)
