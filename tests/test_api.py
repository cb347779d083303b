import pytest
from fastapi.testclient import TestClient

from commutewise.config import Settings
from commutewise.main import create_app

from conftest import FakeDirections, FakeSupabase


def _stop_rows(stops) -> list[dict]:
    return [
        {
            "id": stop.id,
            "name": stop.name,
            "type": stop.kind,
            "latitude": stop.latitude,
            "longitude": stop.longitude,
            "vehicle_types": list(stop.vehicle_types),
            "area": stop.area,
        }
        for stop in stops
    ]


@pytest.fixture
def db(stops) -> FakeSupabase:
    return FakeSupabase({"stops": _stop_rows(stops)})


@pytest.fixture
def directions(sample_path) -> FakeDirections:
    return FakeDirections(result=sample_path)


@pytest.fixture
def client(db, directions):
    app = create_app(Settings(frontend_allowed_origins=()), supabase_client=db, directions=directions, geocoder=None)
    with TestClient(app) as test_client:
        yield test_client


def _build_route(client: TestClient, name: str = "Cubao - Quiapo") -> None:
    assert client.post("/api/builder/start").status_code == 200
    client.patch("/api/builder/fields", json={"field": "route_name", "value": name})
    client.patch("/api/builder/fields", json={"field": "fare", "value": "13"})
    client.put("/api/builder/points/0", json={"stop_id": "t-cubao"})
    client.put("/api/builder/points/1", json={"stop_id": "t-quiapo"})


def test_root_and_health(client) -> None:
    assert client.get("/").json()["status"] == "running"
    assert client.get("/api/health").json() == {"status": "ok"}

    directions_health = client.get("/api/health/directions").json()
    assert directions_health["healthy"] is True

    database_health = client.get("/api/health/database").json()
    assert database_health["connected"] is True
    assert database_health["stops_loaded"] == 5


def test_stops_are_loaded_at_startup(client) -> None:
    response = client.get("/api/stops", params={"kind": "terminal"})

    assert response.status_code == 200
    assert [stop["id"] for stop in response.json()] == ["t-cubao", "t-quiapo", "t-fairview"]

    by_area = client.get("/api/stops/terminals-by-area", params={"vehicle_type": "Jeepney"}).json()
    assert list(by_area) == ["Cubao", "Quiapo"]


def test_builder_editing(client) -> None:
    client.post("/api/builder/start")

    state = client.patch("/api/builder/fields", json={"field": "fare", "value": 100}).json()
    assert state["fare"] == 100
    assert state["discounted_fare"] == 80

    state = client.post("/api/builder/waypoints").json()
    assert [point["role"] for point in state["points"]] == ["origin", "waypoint", "destination"]

    state = client.post("/api/builder/map-selection/1").json()
    assert state["is_selecting_on_map"] is True
    state = client.post("/api/builder/map-selection/confirm", json={"stop_id": "s-aurora"}).json()
    assert state["points"][1]["name"] == "Aurora Blvd"
    assert state["active_point_index"] is None

    state = client.delete("/api/builder/waypoints/1").json()
    assert len(state["points"]) == 2


def test_builder_rejects_unknown_input(client) -> None:
    client.post("/api/builder/start")

    assert client.patch("/api/builder/fields", json={"field": "points", "value": 1}).status_code == 422
    assert client.put("/api/builder/points/0", json={"stop_id": "nowhere"}).status_code == 404


def test_save_route_end_to_end(client, db) -> None:
    _build_route(client)

    response = client.post("/api/builder/save")

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Route saved successfully."
    assert body["route"]["vehicle_type"] == "jeepney"
    assert body["route"]["distance_km"] == 8.4
    assert body["route"]["discounted_fare_amount"] == 10.4
    assert [s["sequence"] for s in body["route_stops"]] == [0, 1]
    assert body["builder"]["is_building"] is False
    assert body["builder"]["route_geometry"]["type"] == "LineString"

    network = client.get("/api/routes").json()
    assert [r["id"] for r in network["routes"]] == [body["route"]["id"]]

    grouped = client.get("/api/routes/by-terminal").json()
    assert grouped[0]["terminal"]["id"] == "t-cubao"
    assert [s["id"] for s in grouped[0]["route_stops"][body["route"]["id"]]] == ["t-cubao", "t-quiapo"]


def test_save_validation_errors(client, db) -> None:
    client.post("/api/builder/start")

    response = client.post("/api/builder/save")

    assert response.status_code == 400
    assert "Route name is required." in response.json()["detail"]["errors"]
    assert ("routes", "insert") not in db.calls


def test_save_with_no_path(client, directions) -> None:
    _build_route(client)
    directions.result = None

    assert client.post("/api/builder/save").status_code == 422


def test_partial_save_is_reported(client, db) -> None:
    _build_route(client)
    db.failures.add(("route_stops", "insert"))

    response = client.post("/api/builder/save")

    assert response.status_code == 502
    assert response.json()["detail"]["route_id"] == db.tables["routes"][0]["id"]


def test_save_without_directions_provider(db, stops) -> None:
    app = create_app(Settings(frontend_allowed_origins=()), supabase_client=db, directions=None, geocoder=None)
    with TestClient(app) as client:
        _build_route(client)
        response = client.post("/api/builder/save")
        directions_health = client.get("/api/health/directions").json()

    assert response.status_code == 503
    assert directions_health["configured"] is False


def test_edit_and_delete_route(client, db) -> None:
    _build_route(client)
    route_id = client.post("/api/builder/save").json()["route"]["id"]

    assert client.post(f"/api/routes/{route_id}/edit").json()["id"] == route_id
    assert client.get("/api/routes").json()["editing_route"]["id"] == route_id

    response = client.patch(f"/api/routes/{route_id}", json={"name": "", "vehicle_type": "Bus", "fare_amount": 20})
    assert response.status_code == 200
    assert response.json()["name"] == "Cubao - Quiapo"
    assert response.json()["discounted_fare_amount"] == 16
    assert client.get("/api/routes").json()["editing_route"] is None

    client.put("/api/routes/hover", json={"id": route_id})
    assert client.delete(f"/api/routes/{route_id}").status_code == 200
    network = client.get("/api/routes").json()
    assert network["routes"] == []
    assert network["hover_route_id"] is None

    assert client.post("/api/routes/missing/edit").status_code == 404


def test_stop_upsert_and_delete(client, db) -> None:
    response = client.post(
        "/api/stops",
        json={"name": "Anonas", "kind": "stop", "latitude": 14.628, "longitude": 121.065, "area": "Project 3"},
    )
    assert response.status_code == 200
    stop_id = response.json()["id"]
    assert any(row["id"] == stop_id for row in db.tables["stops"])

    assert client.delete(f"/api/stops/{stop_id}").status_code == 200
    assert client.delete(f"/api/stops/{stop_id}").status_code == 404


def test_unconfigured_database_degrades() -> None:
    app = create_app(Settings(frontend_allowed_origins=()), supabase_client=None, directions=None, geocoder=None)
    with TestClient(app) as client:
        network = client.get("/api/routes").json()
        database_health = client.get("/api/health/database").json()
        reload_response = client.post("/api/stops/reload")
        routes_reload = client.post("/api/routes/reload")

    assert network["routes"] == []
    assert "Supabase not configured" in network["error"]
    assert database_health["configured"] is False
    assert reload_response.status_code == 503
    assert routes_reload.status_code == 503
