from __future__ import annotations

import asyncio
import copy
import itertools
from dataclasses import dataclass, field
from typing import Any

import pytest

from commutewise.data.stops_repository import StopCatalog, StopRepository
from commutewise.models.domain import RouteGeometry, Stop
from commutewise.services.routing.models import PathResult


@dataclass
class FakeResponse:
    data: Any


class FakeQuery:
    """Chainable stand-in for a PostgREST query builder."""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self._db = db
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._filters: list[tuple[str, Any]] = []
        self._order: tuple[str, bool] | None = None
        self._limit: int | None = None

    def select(self, *_columns, **_kwargs) -> "FakeQuery":
        self._op = "select"
        return self

    def insert(self, payload) -> "FakeQuery":
        self._op, self._payload = "insert", payload
        return self

    def upsert(self, payload) -> "FakeQuery":
        self._op, self._payload = "upsert", payload
        return self

    def update(self, payload) -> "FakeQuery":
        self._op, self._payload = "update", payload
        return self

    def delete(self) -> "FakeQuery":
        self._op = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order = (column, desc)
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def _matches(self, row: dict) -> bool:
        return all(row.get(column) == value for column, value in self._filters)

    def execute(self) -> FakeResponse:
        self._db.calls.append((self._table, self._op))
        if (self._table, self._op) in self._db.failures:
            raise RuntimeError(f"{self._op} on {self._table} rejected")

        rows = self._db.tables.setdefault(self._table, [])
        if self._op == "select":
            result = [copy.deepcopy(row) for row in rows if self._matches(row)]
            if self._order is not None:
                column, desc = self._order
                result.sort(key=lambda row: row.get(column) or "", reverse=desc)
            if self._limit is not None:
                result = result[: self._limit]
            return FakeResponse(result)

        if self._op == "insert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for item in payload:
                row = dict(item)
                row.setdefault("id", f"{self._table}-{next(self._db.ids)}")
                if self._table == "routes":
                    row.setdefault("created_at", f"2024-05-01T08:00:{next(self._db.clock):02d}+00:00")
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResponse(inserted)

        if self._op == "upsert":
            row = dict(self._payload)
            rows[:] = [existing for existing in rows if existing.get("id") != row.get("id")]
            rows.append(row)
            return FakeResponse([copy.deepcopy(row)])

        if self._op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self._payload)
                    updated.append(copy.deepcopy(row))
            return FakeResponse(updated)

        removed = [row for row in rows if self._matches(row)]
        rows[:] = [row for row in rows if not self._matches(row)]
        return FakeResponse(removed)


class FakeSupabase:
    """In-memory tables; ``failures`` holds (table, operation) pairs that raise."""

    def __init__(self, tables: dict[str, list[dict]] | None = None) -> None:
        self.tables: dict[str, list[dict]] = tables or {}
        self.failures: set[tuple[str, str]] = set()
        self.calls: list[tuple[str, str]] = []
        self.ids = itertools.count(1)
        self.clock = itertools.count(0)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


@dataclass
class DirectionsCall:
    coordinates: list[tuple[float, float]]
    profile: str
    snap_radius_m: float | None
    future: asyncio.Future | None = None


@dataclass
class FakeDirections:
    """Directions double; returns ``result`` or, when ``manual`` is set, waits for the test to answer."""

    result: PathResult | None = None
    error: Exception | None = None
    manual: bool = False
    provider: str = "fake"
    calls: list[DirectionsCall] = field(default_factory=list)

    async def route(self, waypoints, profile="driving", snap_radius_m=None):
        call = DirectionsCall(
            coordinates=[(w.longitude, w.latitude) for w in waypoints],
            profile=profile,
            snap_radius_m=snap_radius_m,
        )
        self.calls.append(call)
        if self.manual:
            call.future = asyncio.get_running_loop().create_future()
            return await call.future
        if self.error is not None:
            raise self.error
        return self.result

    async def check_health(self) -> bool:
        return self.error is None


def make_path(*coordinates: tuple[float, float], distance: float = 1200.0, duration: float = 300.0) -> PathResult:
    return PathResult(geometry=RouteGeometry(coordinates=tuple(coordinates)), distance=distance, duration=duration)


@pytest.fixture
def stops() -> list[Stop]:
    return [
        Stop("t-cubao", "Cubao Terminal", "terminal", 14.6190, 121.0530, ("Jeepney", "Bus"), "Cubao"),
        Stop("s-aurora", "Aurora Blvd", "stop", 14.6150, 121.0400),
        Stop("s-legarda", "Legarda", "stop", 14.6010, 120.9920),
        Stop("t-quiapo", "Quiapo Terminal", "terminal", 14.5990, 120.9840, ("Jeepney",), "Quiapo"),
        Stop("t-fairview", "Fairview Terminal", "terminal", 14.7340, 121.0600, ("Bus",), ""),
    ]


@pytest.fixture
def catalog(stops) -> StopCatalog:
    catalog = StopCatalog(StopRepository(None))
    catalog.replace_all(stops)
    return catalog


@pytest.fixture
def sample_path() -> PathResult:
    return make_path((121.0530, 14.6190), (121.0400, 14.6150), (120.9840, 14.5990), distance=8400.0, duration=1500.0)
