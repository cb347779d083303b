"""Route-to-terminal grouping and per-route stop ordering for network views."""

from __future__ import annotations

from typing import Iterable, Sequence

from ...models.domain import RouteStopAttachment, SavedRoute, Stop

UNASSIGNED_AREA = "Unassigned"


def _matches_vehicle(route: SavedRoute, vehicle_type: str | None) -> bool:
    if vehicle_type is None:
        return True
    return bool(route.vehicle_type) and route.vehicle_type.strip().lower() == vehicle_type.strip().lower()


def group_routes_by_terminal(
    routes: Sequence[SavedRoute],
    attachments: Iterable[RouteStopAttachment],
    stops: Iterable[Stop],
    vehicle_type: str | None = None,
) -> dict[str, list[SavedRoute]]:
    """Attach each route to the terminal it starts from.

    The sequence-0 attachment decides when its stop is a terminal. Routes
    without one fall back to their stored ``origin_id``. A route whose origin
    is not a terminal is left out.
    """
    stop_by_id = {stop.id: stop for stop in stops}
    route_by_id = {route.id: route for route in routes}
    grouped: dict[str, list[SavedRoute]] = {}
    assigned: set[str] = set()

    for attachment in attachments:
        if attachment.sequence != 0 or attachment.route_id in assigned:
            continue
        origin = stop_by_id.get(attachment.stop_id)
        if origin is None or not origin.is_terminal:
            continue
        route = route_by_id.get(attachment.route_id)
        if route is None or not _matches_vehicle(route, vehicle_type):
            continue
        grouped.setdefault(origin.id, []).append(route)
        assigned.add(route.id)

    for route in routes:
        if route.id in assigned or not route.origin_id:
            continue
        if not _matches_vehicle(route, vehicle_type):
            continue
        origin = stop_by_id.get(route.origin_id)
        if origin is None or not origin.is_terminal:
            continue
        grouped.setdefault(origin.id, []).append(route)
        assigned.add(route.id)

    return grouped


def ordered_route_stops(
    route: SavedRoute,
    attachments: Iterable[RouteStopAttachment],
    stops: Iterable[Stop],
) -> list[Stop]:
    """Stops of a route in sequence order.

    Routes saved without attachments fall back to their origin and destination.
    """
    stop_by_id = {stop.id: stop for stop in stops}
    own = sorted((a for a in attachments if a.route_id == route.id), key=lambda a: a.sequence)
    ordered = [stop_by_id[a.stop_id] for a in own if a.stop_id in stop_by_id]
    if len(ordered) >= 2:
        return ordered

    fallback: list[Stop] = []
    origin = stop_by_id.get(route.origin_id) if route.origin_id else None
    destination = stop_by_id.get(route.destination_id) if route.destination_id else None
    if origin is not None:
        fallback.append(origin)
    if destination is not None and destination is not origin:
        fallback.append(destination)
    return fallback


def terminals_by_area(
    stops: Iterable[Stop],
    vehicle_type: str | None = None,
    query: str = "",
) -> dict[str, list[Stop]]:
    """Terminals grouped by area label, filtered by served vehicle and a name/area search."""
    needle = query.strip().lower()
    grouped: dict[str, list[Stop]] = {}
    for stop in stops:
        if not stop.is_terminal:
            continue
        if vehicle_type is not None and not stop.serves(vehicle_type):
            continue
        if needle and needle not in stop.name.lower() and needle not in stop.area.lower():
            continue
        grouped.setdefault(stop.area or UNASSIGNED_AREA, []).append(stop)
    return grouped
