"""Stop and terminal records: Supabase access plus the in-memory catalog."""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, Callable

from supabase import Client

from ..db.supabase import execute, require_client
from ..errors import PersistenceError
from ..models.domain import Stop
from ..services.geocoding import GeocodingClient

logger = logging.getLogger(__name__)

STOPS_TABLE = "stops"


def _stop_from_row(row: dict[str, Any]) -> Stop:
    kind = str(row.get("type") or "stop").strip().lower()
    return Stop(
        id=str(row["id"]),
        name=str(row.get("name") or "").strip(),
        kind="terminal" if kind == "terminal" else "stop",
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        vehicle_types=tuple(str(v) for v in (row.get("vehicle_types") or [])),
        area=str(row.get("area") or "").strip(),
    )


def _stop_to_row(stop: Stop) -> dict[str, Any]:
    return {
        "id": stop.id,
        "name": stop.name,
        "type": stop.kind,
        "latitude": stop.latitude,
        "longitude": stop.longitude,
        "vehicle_types": list(stop.vehicle_types),
        "area": stop.area,
    }


class StopRepository:
    def __init__(self, client: Client | None) -> None:
        self._client = client

    async def list(self) -> list[Stop]:
        supabase = require_client(self._client)
        try:
            response = await execute(supabase.table(STOPS_TABLE).select("*"))
        except Exception as e:
            raise PersistenceError(f"Failed to fetch stops: {e}") from e

        stops: list[Stop] = []
        for row in response.data or []:
            try:
                stops.append(_stop_from_row(row))
            except (KeyError, ValueError, TypeError) as e:
                # Skip invalid rows but continue processing
                logger.warning(f"Skipping invalid stop row: {e}")
        return stops

    async def upsert(self, stop: Stop) -> Stop:
        supabase = require_client(self._client)
        try:
            response = await execute(supabase.table(STOPS_TABLE).upsert(_stop_to_row(stop)))
        except Exception as e:
            raise PersistenceError(f"Failed to save stop {stop.id}: {e}") from e
        rows = response.data or []
        return _stop_from_row(rows[0]) if rows else stop

    async def delete(self, stop_id: str) -> None:
        supabase = require_client(self._client)
        try:
            await execute(supabase.table(STOPS_TABLE).delete().eq("id", stop_id))
        except Exception as e:
            raise PersistenceError(f"Failed to delete stop {stop_id}: {e}") from e


class StopCatalog:
    """The stop collection the route builder resolves against.

    Listeners are called with no arguments whenever the collection changes.
    """

    def __init__(self, repository: StopRepository, geocoder: GeocodingClient | None = None) -> None:
        self._repository = repository
        self._geocoder = geocoder
        self._stops: tuple[Stop, ...] = ()
        self._listeners: list[Callable[[], None]] = []

    @property
    def stops(self) -> tuple[Stop, ...]:
        return self._stops

    def get(self, stop_id: str) -> Stop | None:
        for stop in self._stops:
            if stop.id == stop_id:
                return stop
        return None

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def replace_all(self, stops: list[Stop] | tuple[Stop, ...]) -> None:
        stops = tuple(stops)
        if stops == self._stops:
            return
        self._stops = stops
        for listener in list(self._listeners):
            listener()

    async def reload(self) -> tuple[Stop, ...]:
        self.replace_all(await self._repository.list())
        return self._stops

    async def save(self, stop: Stop) -> Stop:
        """Create or update a stop, filling a blank area label from the geocoder."""
        if not stop.id:
            stop = replace(stop, id=str(uuid.uuid4()))
        if not stop.area and self._geocoder is not None:
            area = await self._geocoder.lookup_area(stop.latitude, stop.longitude)
            if area:
                stop = replace(stop, area=area)

        saved = await self._repository.upsert(stop)
        others = [existing for existing in self._stops if existing.id != saved.id]
        self.replace_all([*others, saved])
        return saved

    async def delete(self, stop_id: str) -> None:
        await self._repository.delete(stop_id)
        self.replace_all([stop for stop in self._stops if stop.id != stop_id])
