"""
Timeline projection.

Read-only summary of every path in the fleet, in insertion order.
``duration`` is the waypoint count, used by the playback UI as the
timeline length (not wall-clock time).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List

from fleet.model import Path


@dataclass(frozen=True)
class TimelineEntry:
    id: str
    name: str
    duration: int
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "duration": self.duration,
            "created_at": self.created_at.isoformat(),
        }


def compute_timeline(paths: Iterable[Path]) -> List[TimelineEntry]:
    return [
        TimelineEntry(
            id=path.id,
            name=path.name,
            duration=path.waypoint_count,
            created_at=path.created_at,
        )
        for path in paths
    ]
