import asyncio

import pytest

from commutewise.errors import (
    DirectionsNotConfiguredError,
    PartialSaveError,
    PathUnavailableError,
    RouteValidationError,
    SaveInProgressError,
)
from commutewise.persistence.database import RouteRepository, RouteStopRepository
from commutewise.services.builder.preview import RoutePreviewEngine
from commutewise.services.builder.save import SUCCESS_MESSAGE, RouteSavePipeline
from commutewise.services.builder.store import RouteBuilderStore
from commutewise.services.network.store import RouteNetwork

from conftest import FakeDirections, FakeSupabase

MODES = ("Jeepney", "Bus", "E-Jeepney", "Tricycle")


def _pipeline(catalog, directions, db):
    builder = RouteBuilderStore()
    routes = RouteRepository(db)
    route_stops = RouteStopRepository(db)
    network = RouteNetwork(routes, route_stops)
    pipeline = RouteSavePipeline(
        builder,
        catalog,
        directions,
        routes,
        route_stops,
        network=network,
        transport_modes=MODES,
        snap_radius_m=50.0,
    )
    return builder, network, pipeline


def _fill(builder, stops, name="Cubao - Quiapo via Aurora"):
    builder.start_building()
    builder.set_field("route_name", f"  {name}  ")
    builder.set_field("fare", 13)
    builder.add_waypoint()
    builder.update_point(0, stops[0])
    builder.update_point(1, stops[1])
    builder.update_point(2, stops[3])


def test_save_writes_route_and_ordered_stops(catalog, stops, sample_path) -> None:
    db = FakeSupabase()
    directions = FakeDirections(result=sample_path)
    builder, network, pipeline = _pipeline(catalog, directions, db)
    _fill(builder, stops)

    result = asyncio.run(pipeline.save())

    assert result.message == SUCCESS_MESSAGE
    assert len(db.tables["routes"]) == 1
    row = db.tables["routes"][0]
    assert row["name"] == "Cubao - Quiapo via Aurora"
    assert row["vehicle_type"] == "jeepney"
    assert row["origin_id"] == "t-cubao"
    assert row["destination_id"] == "t-quiapo"
    assert row["distance_m"] == 8400.0
    assert row["fare_amount"] == 13
    assert row["discounted_fare_amount"] == 10.4
    assert row["geometry"]["type"] == "LineString"

    route_stops = sorted(db.tables["route_stops"], key=lambda r: r["sequence"])
    assert [(r["stop_id"], r["sequence"]) for r in route_stops] == [
        ("t-cubao", 0),
        ("s-aurora", 1),
        ("t-quiapo", 2),
    ]
    assert all(r["route_id"] == result.route.id for r in route_stops)

    assert directions.calls[0].coordinates == [(121.0530, 14.6190), (121.0400, 14.6150), (120.9840, 14.5990)]
    assert not builder.state.is_building
    assert builder.state.is_route_confirmed
    assert builder.state.route_geometry == sample_path.geometry
    assert [r.id for r in network.routes] == [result.route.id]
    assert not pipeline.is_saving


def test_free_route_is_saved_with_zero_fares(catalog, stops, sample_path) -> None:
    db = FakeSupabase()
    builder, _, pipeline = _pipeline(catalog, FakeDirections(result=sample_path), db)
    _fill(builder, stops)
    builder.set_field("is_free", True)

    asyncio.run(pipeline.save())

    assert db.tables["routes"][0]["fare_amount"] == 0
    assert db.tables["routes"][0]["discounted_fare_amount"] == 0
    assert {r["fare_amount"] for r in db.tables["route_stops"]} == {0}


def test_invalid_route_touches_nothing(catalog, stops, sample_path) -> None:
    db = FakeSupabase()
    directions = FakeDirections(result=sample_path)
    builder, _, pipeline = _pipeline(catalog, directions, db)
    _fill(builder, stops, name="   ")

    with pytest.raises(RouteValidationError) as exc_info:
        asyncio.run(pipeline.save())

    assert exc_info.value.messages == ["Route name is required."]
    assert db.calls == []
    assert directions.calls == []
    assert builder.state.is_building


def test_missing_provider_is_reported(catalog, stops) -> None:
    db = FakeSupabase()
    builder, _, pipeline = _pipeline(catalog, None, db)
    _fill(builder, stops)

    with pytest.raises(DirectionsNotConfiguredError):
        asyncio.run(pipeline.save())

    assert db.calls == []


def test_no_path_aborts_before_persistence(catalog, stops) -> None:
    db = FakeSupabase()
    builder, _, pipeline = _pipeline(catalog, FakeDirections(result=None), db)
    _fill(builder, stops)

    with pytest.raises(PathUnavailableError):
        asyncio.run(pipeline.save())

    assert db.calls == []
    assert builder.state.is_building
    assert not pipeline.is_saving


def test_failed_stop_write_reports_partial_save(catalog, stops, sample_path) -> None:
    db = FakeSupabase()
    db.failures.add(("route_stops", "insert"))
    builder, network, pipeline = _pipeline(catalog, FakeDirections(result=sample_path), db)
    _fill(builder, stops)

    with pytest.raises(PartialSaveError) as exc_info:
        asyncio.run(pipeline.save())

    # The route row is not rolled back and the network reflects it.
    assert len(db.tables["routes"]) == 1
    assert exc_info.value.route.id == db.tables["routes"][0]["id"]
    assert [r.id for r in network.routes] == [exc_info.value.route.id]
    assert builder.state.is_building
    assert builder.state.route_geometry == sample_path.geometry
    assert not pipeline.is_saving


def test_second_save_while_running_is_rejected(catalog, stops, sample_path) -> None:
    async def scenario():
        db = FakeSupabase()
        directions = FakeDirections(manual=True)
        builder, _, pipeline = _pipeline(catalog, directions, db)
        _fill(builder, stops)

        first = asyncio.ensure_future(pipeline.save())
        await asyncio.sleep(0)
        assert pipeline.is_saving

        with pytest.raises(SaveInProgressError):
            await pipeline.save()

        directions.calls[0].future.set_result(sample_path)
        await first
        return db, directions

    db, directions = asyncio.run(scenario())

    assert len(directions.calls) == 1
    assert len(db.tables["routes"]) == 1


def test_saved_line_stays_visible_with_preview_running(catalog, stops, sample_path) -> None:
    async def scenario():
        db = FakeSupabase()
        directions = FakeDirections(result=sample_path)
        builder, _, pipeline = _pipeline(catalog, directions, db)
        engine = RoutePreviewEngine(builder, catalog, directions, snap_radius_m=50.0)
        engine.start()
        _fill(builder, stops)
        await engine.wait_idle()

        await pipeline.save()
        await engine.wait_idle()
        return builder

    builder = asyncio.run(scenario())

    assert not builder.state.is_building
    assert builder.state.route_geometry == sample_path.geometry
    assert builder.state.distance == 8400.0
