import asyncio

import httpx

from commutewise.errors import DirectionsError
from commutewise.models.domain import RouteGeometry
from commutewise.services.builder.preview import RoutePreviewEngine
from commutewise.services.builder.store import RouteBuilderStore
from commutewise.services.routing.directions_client import DirectionsClient
from commutewise.services.routing.models import PathResult

from conftest import FakeDirections


def _path(*coordinates, distance=1000.0, duration=240.0) -> PathResult:
    return PathResult(geometry=RouteGeometry(tuple(coordinates)), distance=distance, duration=duration)


def _engine(catalog, directions):
    builder = RouteBuilderStore()
    engine = RoutePreviewEngine(builder, catalog, directions, snap_radius_m=50.0)
    engine.start()
    return builder, engine


def test_preview_requests_path_for_resolved_points(catalog, stops, sample_path) -> None:
    async def scenario():
        directions = FakeDirections(result=sample_path)
        builder, engine = _engine(catalog, directions)
        builder.start_building()
        builder.update_point(0, stops[0])
        builder.update_point(1, stops[3])
        await engine.wait_idle()
        return builder, directions

    builder, directions = asyncio.run(scenario())

    assert len(directions.calls) == 1
    call = directions.calls[0]
    assert call.coordinates == [(121.0530, 14.6190), (120.9840, 14.5990)]
    assert call.profile == "driving"
    assert call.snap_radius_m == 50.0
    assert builder.state.route_geometry == sample_path.geometry
    assert builder.state.distance == 8400.0
    assert builder.state.eta == 1500.0
    assert not builder.state.is_route_confirmed


def test_no_request_until_every_point_resolves(catalog, stops) -> None:
    async def scenario():
        directions = FakeDirections(result=_path((0, 0), (1, 1)))
        builder, engine = _engine(catalog, directions)
        builder.start_building()
        builder.add_waypoint()
        builder.update_point(0, stops[0])
        builder.update_point(2, stops[3])
        await engine.wait_idle()
        return builder, directions

    builder, directions = asyncio.run(scenario())

    assert directions.calls == []
    assert builder.state.route_geometry is None


def test_stale_response_is_dropped(catalog, stops) -> None:
    path_a = _path((121.05, 14.62), (121.04, 14.61), distance=2000.0)
    path_b = _path((121.05, 14.62), (120.98, 14.60), distance=9000.0)

    async def scenario():
        directions = FakeDirections(manual=True)
        builder, engine = _engine(catalog, directions)
        builder.start_building()
        builder.update_point(0, stops[0])
        builder.update_point(1, stops[1])
        await asyncio.sleep(0)
        builder.update_point(1, stops[3])
        await asyncio.sleep(0)

        assert len(directions.calls) == 2
        assert engine.latest_request_id == 2

        # B answers first, then the superseded request A arrives late.
        directions.calls[1].future.set_result(path_b)
        await asyncio.sleep(0)
        directions.calls[0].future.set_result(path_a)
        await engine.wait_idle()
        return builder

    builder = asyncio.run(scenario())

    assert builder.state.route_geometry == path_b.geometry
    assert builder.state.distance == 9000.0


def test_provider_failure_clears_preview(catalog, stops, sample_path) -> None:
    async def scenario():
        directions = FakeDirections(result=sample_path)
        builder, engine = _engine(catalog, directions)
        builder.start_building()
        builder.update_point(0, stops[0])
        builder.update_point(1, stops[3])
        await engine.wait_idle()
        assert builder.state.route_geometry is not None

        directions.error = DirectionsError("provider down")
        builder.set_field("transport_mode", "Bus")
        await engine.wait_idle()
        return builder

    builder = asyncio.run(scenario())

    assert builder.state.route_geometry is None
    assert builder.state.distance == 0
    assert builder.state.eta == 0


def test_no_path_clears_preview(catalog, stops, sample_path) -> None:
    async def scenario():
        directions = FakeDirections(result=sample_path)
        builder, engine = _engine(catalog, directions)
        builder.start_building()
        builder.update_point(0, stops[0])
        builder.update_point(1, stops[3])
        await engine.wait_idle()

        directions.result = None
        builder.swap_points(1, 0)
        await engine.wait_idle()
        return builder

    builder = asyncio.run(scenario())

    assert builder.state.route_geometry is None


def test_cancel_clears_unconfirmed_preview(catalog, stops, sample_path) -> None:
    async def scenario():
        directions = FakeDirections(result=sample_path)
        builder, engine = _engine(catalog, directions)
        builder.start_building()
        builder.update_point(0, stops[0])
        builder.update_point(1, stops[3])
        await engine.wait_idle()
        builder.cancel_building()
        await engine.wait_idle()
        return builder

    builder = asyncio.run(scenario())

    assert builder.state.route_geometry is None
    assert builder.state.distance == 0


def test_confirmed_geometry_survives_cancel(catalog, stops, sample_path) -> None:
    async def scenario():
        directions = FakeDirections(result=sample_path)
        builder, engine = _engine(catalog, directions)
        builder.start_building()
        builder.update_point(0, stops[0])
        builder.update_point(1, stops[3])
        await engine.wait_idle()
        builder.set_route_geometry(sample_path.geometry, confirmed=True)
        builder.cancel_building()
        await engine.wait_idle()
        return builder

    builder = asyncio.run(scenario())

    assert builder.state.route_geometry == sample_path.geometry
    assert builder.state.distance == 8400.0


def test_missing_provider_keeps_preview_empty(catalog, stops) -> None:
    async def scenario():
        builder, engine = _engine(catalog, None)
        builder.start_building()
        builder.update_point(0, stops[0])
        builder.update_point(1, stops[3])
        await engine.wait_idle()
        return builder, engine

    builder, engine = asyncio.run(scenario())

    assert builder.state.route_geometry is None
    assert engine.latest_request_id == 0


def test_catalog_change_triggers_refresh(catalog, stops, sample_path) -> None:
    async def scenario():
        directions = FakeDirections(result=sample_path)
        builder, engine = _engine(catalog, directions)
        builder.start_building()
        builder.update_point(0, stops[0])
        builder.update_point(1, stops[3])
        await engine.wait_idle()

        catalog.replace_all([s for s in stops if s.id != "t-quiapo"])
        await engine.wait_idle()
        return builder, directions

    builder, directions = asyncio.run(scenario())

    assert len(directions.calls) == 1
    assert builder.state.route_geometry is None


def test_stopped_engine_ignores_changes(catalog, stops, sample_path) -> None:
    async def scenario():
        directions = FakeDirections(result=sample_path)
        builder, engine = _engine(catalog, directions)
        engine.stop()
        builder.start_building()
        builder.update_point(0, stops[0])
        builder.update_point(1, stops[3])
        await engine.wait_idle()
        return directions

    directions = asyncio.run(scenario())

    assert directions.calls == []


def test_malformed_provider_payload_clears_preview(catalog, stops) -> None:
    bodies = [
        {
            "code": "Ok",
            "routes": [
                {
                    "geometry": {"type": "LineString", "coordinates": [[121.053, 14.619], [120.984, 14.599]]},
                    "distance": 8400.0,
                    "duration": 1500.0,
                }
            ],
        },
        {"code": "Ok", "routes": [{"geometry": {"type": "LineString", "coordinates": []}, "distance": "n/a"}]},
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=bodies.pop(0))

    directions = DirectionsClient(
        provider="osrm",
        base_url="http://osrm.local:5000",
        access_token="",
        max_retries=0,
        backoff_seconds=0,
        transport=httpx.MockTransport(handler),
    )

    async def scenario():
        builder, engine = _engine(catalog, directions)
        builder.start_building()
        builder.update_point(0, stops[0])
        builder.update_point(1, stops[3])
        await engine.wait_idle()
        assert builder.state.distance == 8400.0

        builder.set_field("transport_mode", "Bus")
        await engine.wait_idle()
        return builder

    builder = asyncio.run(scenario())

    assert builder.state.route_geometry is None
    assert builder.state.distance == 0
    assert builder.state.eta == 0
