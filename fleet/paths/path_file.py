"""
Path file parser.

Parses uploaded flight path files into an ordered waypoint list. Files are
UTF-8 JSON in one of three shapes:

    [[lat, lon], [lat, lon], ...]                      bare waypoint array
    {"type": "LineString", "coordinates": [...]}       any object with coordinates
    {"type": "Feature", "geometry": {"coordinates": [...]}}   GeoJSON feature

A waypoint is an array of at least two finite numbers. Extra dimensions
(altitude, timestamp) are kept as-is; the model never interprets them.
"""

import json
import logging
import math
from pathlib import Path as FilePath
from typing import Any, List, Union

from fleet.errors import InvalidInput
from fleet.model import Coordinate

logger = logging.getLogger(__name__)

MIN_WAYPOINT_DIMENSIONS = 2


def validate_waypoint(value: Any, index: int = None) -> Coordinate:
    """
    Check a single waypoint and return it as a list.

    Raises:
        InvalidInput: If the value is not an array of >= 2 finite numbers
    """
    where = f"Waypoint {index}" if index is not None else "Waypoint"

    if not isinstance(value, (list, tuple)):
        raise InvalidInput(f"{where} must be an array of numbers, got {type(value).__name__}")
    if len(value) < MIN_WAYPOINT_DIMENSIONS:
        raise InvalidInput(f"{where} needs at least {MIN_WAYPOINT_DIMENSIONS} values")

    for v in value:
        # bool is an int subclass; reject it explicitly
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise InvalidInput(f"{where} contains a non-numeric value: {v!r}")
        try:
            finite = math.isfinite(v)
        except OverflowError:
            # JSON integers are unbounded; float conversion can overflow
            finite = False
        if not finite:
            raise InvalidInput(f"{where} contains a non-finite value")

    return list(value)


def validate_waypoints(values: Any) -> List[Coordinate]:
    if not isinstance(values, list):
        raise InvalidInput("Path coordinates must be an array of waypoints")
    return [validate_waypoint(v, i) for i, v in enumerate(values)]


def _extract_coordinates(document: Any) -> Any:
    if isinstance(document, list):
        return document

    if isinstance(document, dict):
        if document.get("type") == "Feature":
            geometry = document.get("geometry")
            if isinstance(geometry, dict) and "coordinates" in geometry:
                return geometry["coordinates"]
        if "coordinates" in document:
            return document["coordinates"]

    raise InvalidInput(
        "Path file must be a waypoint array, an object with 'coordinates', "
        "or a GeoJSON Feature"
    )


def parse_path_string(text: str) -> List[Coordinate]:
    """Parse a JSON path document into waypoints."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidInput(f"Path file is not valid JSON: {e.msg} (line {e.lineno})")
    except (ValueError, RecursionError) as e:
        # Integer digit limit, or nesting deeper than the decoder can follow
        raise InvalidInput(f"Path file is not valid JSON: {type(e).__name__}")

    coordinates = validate_waypoints(_extract_coordinates(document))
    logger.debug(f"Parsed path file with {len(coordinates)} waypoints")
    return coordinates


def parse_path_bytes(content: bytes) -> List[Coordinate]:
    """Parse uploaded path file content."""
    if not content:
        raise InvalidInput("Empty file")
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidInput("Path file must be UTF-8 encoded")
    return parse_path_string(text)


def parse_path_file(file_path: Union[str, FilePath]) -> List[Coordinate]:
    """Parse a path file from disk."""
    try:
        content = FilePath(file_path).read_bytes()
    except OSError as e:
        raise InvalidInput(f"Cannot read path file {file_path}: {e.strerror}")
    return parse_path_bytes(content)
