"""
Error taxonomy for the drone fleet domain.

Every failure surfaced to a caller carries a ``kind`` (the taxonomy name)
and a human-readable message. The HTTP layer maps kinds to status codes.
"""


class FleetError(Exception):
    """Base class for all fleet domain errors."""

    kind = "FleetError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class InvalidInput(FleetError):
    """Malformed or missing required input."""

    kind = "InvalidInput"


class NotFound(FleetError):
    """A referenced path or drone id is absent from the aggregate."""

    kind = "NotFound"


class UpstreamError(FleetError):
    """The place lookup collaborator failed or timed out."""

    kind = "UpstreamError"


class PersistenceError(FleetError):
    """The aggregate could not be read or written."""

    kind = "PersistenceError"


class ConcurrencyConflict(PersistenceError):
    """A save lost the race against another writer (stale version)."""

    def __init__(self, fleet_key: str, expected_version: int):
        super().__init__(
            f"Fleet '{fleet_key}' was modified concurrently "
            f"(expected version {expected_version})"
        )
        self.fleet_key = fleet_key
        self.expected_version = expected_version
