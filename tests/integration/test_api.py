"""
Integration tests for DRONEFLEET API.

Exercises every endpoint through the FastAPI app on the SQLite test
database. Fixtures (db, client) provided by tests/conftest.py.
"""
import json

import pytest

from api.state import get_places_client
from fleet.errors import UpstreamError

WAYPOINTS = [[47.37, 8.54], [47.38, 8.55], [47.39, 8.56]]


def _create_path(client, coordinates=None, name=None):
    body = {"coordinates": coordinates if coordinates is not None else WAYPOINTS}
    if name is not None:
        body["name"] = name
    response = client.post("/api/paths", json=body)
    assert response.status_code == 200, response.text
    return response.json()["path"]


def _create_drone(client, **body):
    response = client.post("/api/drones", json=body)
    assert response.status_code == 200, response.text
    return response.json()["drone"]


def _assert_error(response, status_code, kind):
    assert response.status_code == status_code, response.text
    data = response.json()
    assert data["success"] is False
    assert data["error"] == kind
    assert data["message"]
    assert data["request_id"] == response.headers["X-Request-ID"]
    return data


# ============================================================================
# System Endpoint Tests
# ============================================================================

def test_root_endpoint(client):
    """Test API root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "DRONEFLEET API"
    assert data["version"] == "1.0.0"
    assert data["status"] == "operational"


def test_health_check(client):
    """Health is at worst degraded in tests: no Mapbox token is configured."""
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] in ("healthy", "degraded")
    assert data["components"]["fleet_store"]["status"] == "healthy"
    assert "place_search" in data["components"]


def test_liveness(client):
    response = client.get("/api/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "alive"


def test_readiness(client):
    response = client.get("/api/health/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_detailed_status(client):
    response = client.get("/api/status")
    assert response.status_code == 200
    data = response.json()
    assert data["uptime_seconds"] >= 0
    assert "mapbox_geocoding" in data["circuit_breakers"]
    assert data["config"]["fleet_store"] == "database"


def test_request_id_is_echoed(client):
    response = client.get("/api/fleet", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"


# ============================================================================
# Fleet + Path Endpoint Tests
# ============================================================================

class TestFleet:

    def test_fleet_created_lazily(self, client):
        response = client.get("/api/fleet")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Default Drone"
        assert data["paths"] == []
        assert data["drones"] == []

    def test_fleet_is_stable_across_reads(self, client):
        first = client.get("/api/fleet").json()
        second = client.get("/api/fleet").json()
        assert first == second


class TestPaths:

    def test_create_path(self, client):
        response = client.post("/api/paths", json={"coordinates": WAYPOINTS})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Path uploaded successfully"
        assert data["path"]["name"] == "Path 1"
        assert data["path"]["coordinates"] == WAYPOINTS
        assert len(data["path"]["id"]) == 24
        assert [p["id"] for p in data["fleet"]["paths"]] == [data["path"]["id"]]
        assert data["fleet"]["version"] == client.get("/api/fleet").json()["version"]

    def test_created_response_does_not_reread_fleet(self, client):
        from fastapi import Depends

        from api.database import get_db
        from api.main import app
        from api.state import build_fleet_service, get_fleet_service

        class WriteOnlyService:
            def __init__(self, inner):
                self.inner = inner

            def create_path_with_fleet(self, coordinates, name=None):
                return self.inner.create_path_with_fleet(coordinates, name=name)

            def get_fleet(self):
                raise AssertionError("fleet was read again after the write")

        def override(db=Depends(get_db)):
            return WriteOnlyService(build_fleet_service(db))

        app.dependency_overrides[get_fleet_service] = override
        try:
            created = client.post("/api/paths", json={"coordinates": WAYPOINTS})
            uploaded = client.post(
                "/api/upload",
                files={"file": ("route.json", json.dumps(WAYPOINTS).encode(), "application/json")},
            )
        finally:
            app.dependency_overrides.pop(get_fleet_service, None)

        assert created.status_code == 200, created.text
        assert uploaded.status_code == 200, uploaded.text
        assert len(uploaded.json()["fleet"]["paths"]) == 2

    def test_service_routes_run_off_the_event_loop(self):
        import inspect

        from api.routers import drones, paths, timeline

        handlers = [
            paths.create_path,
            paths.list_paths,
            paths.get_path,
            paths.append_waypoint,
            drones.create_drone,
            drones.list_drones,
            drones.get_drone,
            drones.update_drone_position,
            timeline.get_timeline,
            timeline.get_fleet,
        ]
        for handler in handlers:
            assert not inspect.iscoroutinefunction(handler), handler.__name__

    def test_default_names_count_up(self, client):
        _create_path(client)
        _create_path(client, name="Named")
        assert _create_path(client)["name"] == "Path 3"

    def test_empty_coordinates_allowed(self, client):
        assert _create_path(client, coordinates=[])["coordinates"] == []

    def test_missing_coordinates_is_422(self, client):
        data = _assert_error(client.post("/api/paths", json={"name": "x"}), 422, "InvalidInput")
        assert data["detail"][0]["loc"] == ["body", "coordinates"]

    def test_non_numeric_coordinates_is_422(self, client):
        response = client.post("/api/paths", json={"coordinates": [["a", "b"]]})
        _assert_error(response, 422, "InvalidInput")

    def test_short_waypoint_is_400(self, client):
        response = client.post("/api/paths", json={"coordinates": [[1]]})
        _assert_error(response, 400, "InvalidInput")

    def test_list_paths_and_drones(self, client):
        path = _create_path(client)
        drone = _create_drone(client)
        response = client.get("/api/paths")
        assert response.status_code == 200
        data = response.json()
        assert [p["id"] for p in data["paths"]] == [path["id"]]
        assert [d["id"] for d in data["drones"]] == [drone["id"]]

    def test_get_path(self, client):
        path = _create_path(client, name="Survey")
        response = client.get(f"/api/paths/{path['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Survey"

    def test_get_unknown_path(self, client):
        data = _assert_error(client.get("/api/paths/unknown"), 404, "NotFound")
        assert data["message"] == "Path not found: unknown"

    def test_append_waypoint(self, client):
        path = _create_path(client, coordinates=[[1, 2], [3, 4]])
        response = client.post(f"/api/paths/{path['id']}/waypoints", json={"coordinates": [5, 6]})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["path"]["coordinates"] == [[1, 2], [3, 4], [5, 6]]

    def test_append_waypoint_unknown_path(self, client):
        _create_path(client)
        before = client.get("/api/fleet").json()

        response = client.post("/api/paths/unknown/waypoints", json={"coordinates": [5, 6]})
        _assert_error(response, 404, "NotFound")

        assert client.get("/api/fleet").json() == before


class TestUpload:

    def test_upload_bare_array(self, client):
        response = client.post(
            "/api/upload",
            files={"file": ("route.json", json.dumps(WAYPOINTS).encode(), "application/json")},
        )
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["path"]["name"] == "Path 1"
        assert data["path"]["coordinates"] == WAYPOINTS
        assert len(data["fleet"]["paths"]) == 1

    def test_upload_geojson_feature_with_name(self, client):
        feature = {
            "type": "Feature",
            "geometry": {"type": "LineString", "coordinates": WAYPOINTS},
            "properties": {},
        }
        response = client.post(
            "/api/upload",
            files={"file": ("survey.geojson", json.dumps(feature).encode(), "application/geo+json")},
            data={"name": "Survey A"},
        )
        assert response.status_code == 200, response.text
        assert response.json()["path"]["name"] == "Survey A"

    def test_upload_invalid_json(self, client):
        response = client.post(
            "/api/upload",
            files={"file": ("route.json", b"{not json", "application/json")},
        )
        _assert_error(response, 400, "InvalidInput")

    def test_upload_empty_file(self, client):
        response = client.post(
            "/api/upload",
            files={"file": ("route.json", b"", "application/json")},
        )
        _assert_error(response, 400, "InvalidInput")

    def test_upload_integer_too_large_for_float(self, client):
        content = ("[[" + "9" * 400 + ", 1]]").encode()
        response = client.post(
            "/api/upload",
            files={"file": ("route.json", content, "application/json")},
        )
        _assert_error(response, 400, "InvalidInput")

    def test_upload_nesting_too_deep(self, client):
        content = ("[" * 100000 + "]" * 100000).encode()
        response = client.post(
            "/api/upload",
            files={"file": ("route.json", content, "application/json")},
        )
        _assert_error(response, 400, "InvalidInput")
        assert client.get("/api/fleet").json()["paths"] == []

    def test_upload_too_large(self, client, monkeypatch):
        from api.config import settings

        monkeypatch.setattr(settings, "max_upload_size_bytes", 10)
        response = client.post(
            "/api/upload",
            files={"file": ("route.json", json.dumps(WAYPOINTS).encode(), "application/json")},
        )
        data = _assert_error(response, 400, "InvalidInput")
        assert "too large" in data["message"]

    def test_upload_without_file_is_422(self, client):
        _assert_error(client.post("/api/upload"), 422, "InvalidInput")


# ============================================================================
# Drone Endpoint Tests
# ============================================================================

class TestDrones:

    def test_create_drone_defaults(self, client):
        response = client.post("/api/drones", json={})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        drone = data["drone"]
        assert drone["name"] == "Drone 1"
        assert drone["color"].startswith("#") and len(drone["color"]) == 7
        assert drone["is_active"] is False
        assert drone["current_position"] == 0
        assert drone["current_path_id"] is None

    def test_create_drone_with_name_and_color(self, client):
        drone = _create_drone(client, name="Scout", color="#ff8800")
        assert drone["name"] == "Scout"
        assert drone["color"] == "#ff8800"

    def test_list_drones(self, client):
        first = _create_drone(client)
        second = _create_drone(client)
        response = client.get("/api/drones")
        assert response.status_code == 200
        assert [d["id"] for d in response.json()] == [first["id"], second["id"]]

    def test_get_drone(self, client):
        drone = _create_drone(client, name="Scout")
        response = client.get(f"/api/drones/{drone['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Scout"

    def test_get_unknown_drone(self, client):
        data = _assert_error(client.get("/api/drones/unknown"), 404, "NotFound")
        assert data["message"] == "Drone instance not found: unknown"

    def test_update_position(self, client):
        path = _create_path(client)
        drone = _create_drone(client)
        response = client.put(
            f"/api/drones/{drone['id']}/position",
            json={"path_id": path["id"], "position": 2},
        )
        assert response.status_code == 200
        updated = response.json()["drone"]
        assert updated["current_path_id"] == path["id"]
        assert updated["current_position"] == 2

    def test_update_position_unknown_path_is_accepted(self, client):
        drone = _create_drone(client)
        response = client.put(
            f"/api/drones/{drone['id']}/position",
            json={"path_id": "no-such-path", "position": 500},
        )
        assert response.status_code == 200
        assert response.json()["drone"]["current_path_id"] == "no-such-path"

    def test_update_position_unknown_drone(self, client):
        response = client.put(
            "/api/drones/unknown/position",
            json={"path_id": None, "position": 0},
        )
        _assert_error(response, 404, "NotFound")

    def test_update_position_requires_position(self, client):
        drone = _create_drone(client)
        response = client.put(f"/api/drones/{drone['id']}/position", json={"path_id": None})
        _assert_error(response, 422, "InvalidInput")


# ============================================================================
# Timeline Endpoint Tests
# ============================================================================

def test_timeline(client):
    first = _create_path(client)
    second = _create_path(client, coordinates=[])
    response = client.get("/api/timeline")
    assert response.status_code == 200
    entries = response.json()
    assert [(e["id"], e["name"], e["duration"]) for e in entries] == [
        (first["id"], "Path 1", 3),
        (second["id"], "Path 2", 0),
    ]
    assert entries[0]["created_at"]


def test_timeline_empty(client):
    response = client.get("/api/timeline")
    assert response.status_code == 200
    assert response.json() == []


# ============================================================================
# Place Search Endpoint Tests
# ============================================================================

class FakePlacesClient:
    def __init__(self, results=None, error=None):
        self.results = results or []
        self.error = error
        self.queries = []

    def search(self, query):
        self.queries.append(query)
        if not query:
            return []
        if self.error is not None:
            raise self.error
        return self.results


@pytest.fixture
def fake_places(client):
    from api.main import app
    from api.places import PlaceResult

    fake = FakePlacesClient(results=[
        PlaceResult(id="place.123", name="Zurich, Switzerland", coordinates=[47.3769, 8.5417]),
    ])
    app.dependency_overrides[get_places_client] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_places_client, None)


class TestSearch:

    def test_search(self, client, fake_places):
        response = client.get("/api/search", params={"query": "Zurich"})
        assert response.status_code == 200
        assert response.json() == [
            {"id": "place.123", "name": "Zurich, Switzerland", "coordinates": [47.3769, 8.5417]},
        ]
        assert fake_places.queries == ["Zurich"]

    def test_empty_query(self, client, fake_places):
        response = client.get("/api/search")
        assert response.status_code == 200
        assert response.json() == []

    def test_upstream_failure_is_502(self, client, fake_places):
        fake_places.error = UpstreamError("Place search timed out after 10.0s")
        response = client.get("/api/search", params={"query": "Zurich"})
        _assert_error(response, 502, "UpstreamError")


# ============================================================================
# Error Handling Tests
# ============================================================================

def test_persistence_error_is_503(client):
    from api.main import app
    from api.state import get_fleet_service
    from fleet.errors import PersistenceError

    class BrokenService:
        def get_fleet(self):
            raise PersistenceError("Could not read fleet 'default'")

    app.dependency_overrides[get_fleet_service] = lambda: BrokenService()
    try:
        _assert_error(client.get("/api/fleet"), 503, "PersistenceError")
    finally:
        app.dependency_overrides.pop(get_fleet_service, None)


def test_unexpected_error_is_500(client):
    from api.main import app
    from api.state import get_fleet_service

    class BrokenService:
        def get_fleet(self):
            raise RuntimeError("secret internals")

    app.dependency_overrides[get_fleet_service] = lambda: BrokenService()
    try:
        response = client.get("/api/fleet")
    finally:
        app.dependency_overrides.pop(get_fleet_service, None)

    assert response.status_code == 500
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "InternalError"
    assert data["request_id"]
