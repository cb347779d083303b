"""Resolution of route points to stops, and pre-commit validation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from ...models.domain import Stop
from .models import RouteBuilderState, RoutePoint


@dataclass(frozen=True, slots=True)
class Resolution:
    """All-or-nothing result of resolving route points.

    ``stops`` is filled only when every point resolved. Otherwise
    ``unselected`` lists points with no stop chosen and ``missing`` lists
    points whose stop no longer exists.
    """

    stops: tuple[Stop, ...] = ()
    unselected: tuple[int, ...] = ()
    missing: tuple[int, ...] = ()

    @property
    def ready(self) -> bool:
        return len(self.stops) >= 2

    @property
    def origin(self) -> Stop:
        if not self.ready:
            raise ValueError("Route points are not resolved.")
        return self.stops[0]

    @property
    def destination(self) -> Stop:
        if not self.ready:
            raise ValueError("Route points are not resolved.")
        return self.stops[-1]


def resolve_route_stops(points: Sequence[RoutePoint], stops: Iterable[Stop]) -> Resolution:
    stop_by_id = {stop.id: stop for stop in stops}
    resolved: list[Stop] = []
    unselected: list[int] = []
    missing: list[int] = []

    for index, point in enumerate(points):
        if not point.stop_id:
            unselected.append(index)
            continue
        stop = stop_by_id.get(point.stop_id)
        if stop is None:
            missing.append(index)
            continue
        resolved.append(stop)

    if unselected or missing or len(resolved) < 2:
        return Resolution(unselected=tuple(unselected), missing=tuple(missing))
    return Resolution(stops=tuple(resolved))


def _point_label(point: RoutePoint) -> str:
    if point.role == "origin":
        return "Origin"
    if point.role == "destination":
        return "Destination"
    return f"Waypoint {point.order}"


def validate_route(
    state: RouteBuilderState,
    stops: Iterable[Stop],
    transport_modes: Iterable[str],
) -> list[str]:
    """Collect every reason the builder state cannot be saved yet."""
    errors: list[str] = []

    if not state.route_name.strip():
        errors.append("Route name is required.")

    known_modes = {mode.strip().lower() for mode in transport_modes}
    if state.transport_mode.strip().lower() not in known_modes:
        errors.append(f"Transport mode '{state.transport_mode}' is not supported.")

    if not state.is_free and (not math.isfinite(state.fare) or state.fare < 0):
        errors.append("Fare must be a non-negative number.")

    points = state.points
    if len(points) < 2:
        errors.append("A route needs at least an origin and a destination.")
        return errors

    resolution = resolve_route_stops(points, stops)
    for index in resolution.unselected:
        errors.append(f"{_point_label(points[index])} has no stop selected.")
    for index in resolution.missing:
        errors.append(f"{_point_label(points[index])} refers to a stop that no longer exists.")

    return errors
