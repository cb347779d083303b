"""Database persistence for saved routes and their stop attachments."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Sequence

from supabase import Client

from ..db.supabase import execute, require_client
from ..errors import PersistenceError
from ..models.domain import RouteDraft, RouteStopAttachment, SavedRoute
from ..services.geospatial import geometry_from_geojson, geometry_to_geojson

logger = logging.getLogger(__name__)

ROUTES_TABLE = "routes"
ROUTE_STOPS_TABLE = "route_stops"


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable route timestamp: {value!r}")
        return None


def route_from_row(row: dict[str, Any]) -> SavedRoute:
    return SavedRoute(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        vehicle_type=str(row.get("vehicle_type") or "").strip().lower(),
        origin_id=row.get("origin_id"),
        destination_id=row.get("destination_id"),
        geometry=geometry_from_geojson(row.get("geometry")),
        distance_m=_optional_float(row.get("distance_m")),
        duration_sec=_optional_float(row.get("duration_sec")),
        fare_amount=_optional_float(row.get("fare_amount")),
        discounted_fare_amount=_optional_float(row.get("discounted_fare_amount")),
        is_strict=bool(row.get("is_strict") or False),
        created_at=_parse_timestamp(row.get("created_at")),
    )


def attachment_from_row(row: dict[str, Any]) -> RouteStopAttachment:
    return RouteStopAttachment(
        id=str(row["id"]) if row.get("id") is not None else None,
        route_id=str(row["route_id"]),
        stop_id=str(row["stop_id"]),
        sequence=int(row["sequence"]),
        fare_amount=_optional_float(row.get("fare_amount")),
        discounted_fare_amount=_optional_float(row.get("discounted_fare_amount")),
    )


class RouteRepository:
    """Reads and writes rows of the ``routes`` table."""

    def __init__(self, client: Client | None) -> None:
        self._client = client

    async def create(self, draft: RouteDraft) -> SavedRoute:
        """Insert a route; the database assigns its id and creation timestamp."""
        supabase = require_client(self._client)
        payload = {
            "name": draft.name,
            "vehicle_type": draft.vehicle_type.strip().lower(),
            "origin_id": draft.origin_id,
            "destination_id": draft.destination_id,
            "geometry": geometry_to_geojson(draft.geometry),
            "distance_m": draft.distance_m,
            "duration_sec": draft.duration_sec,
            "fare_amount": draft.fare_amount,
            "discounted_fare_amount": draft.discounted_fare_amount,
            "is_strict": draft.is_strict,
        }
        try:
            response = await execute(supabase.table(ROUTES_TABLE).insert(payload))
        except Exception as e:
            logger.error(f"Failed to save route definition: {e}")
            raise PersistenceError(f"Failed to save route '{draft.name}': {e}") from e

        rows = response.data or []
        if not rows:
            raise PersistenceError(f"Route '{draft.name}' was not returned by the database after insert")
        return route_from_row(rows[0])

    async def update_meta(
        self,
        route_id: str,
        *,
        name: str,
        vehicle_type: str,
        fare_amount: float,
        discounted_fare_amount: float,
        is_strict: bool,
    ) -> SavedRoute:
        """Update the editable columns only; geometry and endpoints are left alone."""
        supabase = require_client(self._client)
        payload = {
            "name": name,
            "vehicle_type": vehicle_type.strip().lower(),
            "fare_amount": fare_amount,
            "discounted_fare_amount": discounted_fare_amount,
            "is_strict": is_strict,
        }
        try:
            response = await execute(supabase.table(ROUTES_TABLE).update(payload).eq("id", route_id))
        except Exception as e:
            logger.error(f"Failed to update route {route_id}: {e}")
            raise PersistenceError(f"Failed to update route {route_id}: {e}") from e

        rows = response.data or []
        if not rows:
            raise PersistenceError(f"Route {route_id} not found")
        return route_from_row(rows[0])

    async def list(self) -> list[SavedRoute]:
        """All routes, newest first."""
        supabase = require_client(self._client)
        try:
            response = await execute(supabase.table(ROUTES_TABLE).select("*").order("created_at", desc=True))
        except Exception as e:
            logger.error(f"Failed to fetch routes: {e}")
            raise PersistenceError(f"Failed to fetch routes: {e}") from e

        routes: list[SavedRoute] = []
        for row in response.data or []:
            try:
                routes.append(route_from_row(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid route row: {e}")
        return routes

    async def delete(self, route_id: str) -> None:
        """Delete a route; its ``route_stops`` rows go with it (ON DELETE CASCADE)."""
        supabase = require_client(self._client)
        try:
            await execute(supabase.table(ROUTES_TABLE).delete().eq("id", route_id))
        except Exception as e:
            logger.error(f"Failed to delete route {route_id}: {e}")
            raise PersistenceError(f"Failed to delete route {route_id}: {e}") from e


class RouteStopRepository:
    """Reads and writes rows of the ``route_stops`` table."""

    def __init__(self, client: Client | None) -> None:
        self._client = client

    async def bulk_create(self, route_id: str, attachments: Sequence[RouteStopAttachment]) -> None:
        if not attachments:
            return
        supabase = require_client(self._client)
        payload = [
            {
                "route_id": route_id,
                "stop_id": attachment.stop_id,
                "sequence": attachment.sequence,
                "fare_amount": attachment.fare_amount,
                "discounted_fare_amount": attachment.discounted_fare_amount,
            }
            for attachment in attachments
        ]
        try:
            await execute(supabase.table(ROUTE_STOPS_TABLE).insert(payload))
        except Exception as e:
            logger.error(f"Failed to save route stops for route {route_id}: {e}")
            raise PersistenceError(f"Failed to save route stops for route {route_id}: {e}") from e

    async def list_all(self) -> list[RouteStopAttachment]:
        """Every attachment; an access-policy or network failure yields an empty list."""
        try:
            supabase = require_client(self._client)
            response = await execute(supabase.table(ROUTE_STOPS_TABLE).select("*"))
        except Exception as e:
            logger.error(f"Failed to fetch route stops: {e}")
            return []

        attachments: list[RouteStopAttachment] = []
        for row in response.data or []:
            try:
                attachments.append(attachment_from_row(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid route stop row: {e}")
        return attachments
