"""
Place search client (Mapbox geocoding).

Thin wrapper over the Mapbox forward-geocoding endpoint, used by the map
UI to jump to a location. Results are returned with coordinates in
[lat, lon] order, matching path waypoints (Mapbox ``center`` is [lon, lat]).

Every failure mode (missing token, transport error, timeout, non-2xx,
unexpected payload, open circuit) is raised as UpstreamError.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from api.resilience import CircuitBreaker, CircuitOpenError, places_breaker
from fleet.errors import UpstreamError

logger = logging.getLogger(__name__)


@dataclass
class PlaceResult:
    """A geocoded place."""
    id: str
    name: str
    coordinates: List[float]  # [lat, lon]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PlaceLookupClient:
    """Mapbox forward-geocoding client guarded by a circuit breaker."""

    def __init__(
        self,
        access_token: Optional[str],
        base_url: str = "https://api.mapbox.com/geocoding/v5/mapbox.places",
        limit: int = 5,
        types: str = "place,poi",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        breaker: CircuitBreaker = places_breaker,
    ):
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.limit = limit
        self.types = types
        self.timeout = timeout
        self.session = session or requests.Session()
        self.breaker = breaker

    @classmethod
    def from_settings(cls, settings) -> 'PlaceLookupClient':
        return cls(
            access_token=settings.mapbox_access_token,
            base_url=settings.mapbox_geocoding_url,
            limit=settings.place_search_limit,
            types=settings.place_search_types,
            timeout=settings.place_search_timeout,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token)

    def search(self, query: Optional[str]) -> List[PlaceResult]:
        """
        Look up places matching a free-text query.

        Args:
            query: Free text; blank queries return no results without
                calling upstream

        Returns:
            Matching places, in upstream relevance order

        Raises:
            UpstreamError: Upstream unavailable, failing, or misconfigured
        """
        if not query or not query.strip():
            return []
        if not self.is_configured:
            raise UpstreamError("Place search is not configured (MAPBOX_ACCESS_TOKEN missing)")

        try:
            payload = self.breaker(self._fetch)(query.strip())
        except CircuitOpenError as e:
            raise UpstreamError(str(e)) from e
        except requests.Timeout as e:
            raise UpstreamError(f"Place search timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            logger.error(f"Place search request failed: {e}")
            raise UpstreamError(f"Place search failed: {type(e).__name__}") from e

        return self._parse_features(payload)

    def _fetch(self, query: str) -> Dict[str, Any]:
        url = f"{self.base_url}/{quote(query, safe='')}.json"
        response = self.session.get(
            url,
            params={
                "access_token": self.access_token,
                "limit": self.limit,
                "types": self.types,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as e:
            raise requests.RequestException(f"Invalid JSON from place search: {e}") from e

    @staticmethod
    def _parse_features(payload: Any) -> List[PlaceResult]:
        features = payload.get("features") if isinstance(payload, dict) else None
        if not isinstance(features, list):
            raise UpstreamError("Place search returned an unexpected payload")

        results = []
        for feature in features:
            try:
                lon, lat = feature["center"][:2]
                results.append(PlaceResult(
                    id=str(feature["id"]),
                    name=feature["place_name"],
                    coordinates=[lat, lon],
                ))
            except (KeyError, TypeError, ValueError) as e:
                raise UpstreamError(f"Place search returned a malformed feature: {e}") from e
        return results
