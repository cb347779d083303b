"""In-progress route definition and its transitions."""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, Callable, Sequence

from ...models.domain import RouteGeometry, Stop
from .fares import calculate_discount, clamp_fare, parse_amount
from .models import DEFAULT_TRANSPORT_MODE, PointRole, RouteBuilderState, RoutePoint

logger = logging.getLogger(__name__)

Listener = Callable[[RouteBuilderState, RouteBuilderState], None]

BUILDER_FIELDS = frozenset(
    {
        "route_name",
        "distance",
        "eta",
        "fare",
        "discounted_fare",
        "is_free",
        "is_strict",
        "transport_mode",
    }
)


def normalize_points(points: Sequence[RoutePoint]) -> tuple[RoutePoint, ...]:
    """Re-derive role and order from position: origin first, destination last."""
    last = len(points) - 1
    normalized = []
    for index, point in enumerate(points):
        role: PointRole = "waypoint"
        if index == 0:
            role = "origin"
        elif index == last:
            role = "destination"
        if point.role != role or point.order != index:
            point = replace(point, role=role, order=index)
        normalized.append(point)
    return tuple(normalized)


def create_initial_points() -> tuple[RoutePoint, ...]:
    return normalize_points(
        [
            RoutePoint(id="origin", stop_id=None, name="", role="origin", order=0),
            RoutePoint(id="dest", stop_id=None, name="", role="destination", order=1),
        ]
    )


class RouteBuilderStore:
    """Owns the route being built.

    Every transition replaces the state snapshot; listeners are called with
    ``(previous, current)`` only when something actually changed.
    """

    def __init__(self, default_transport_mode: str = DEFAULT_TRANSPORT_MODE) -> None:
        self.default_transport_mode = default_transport_mode
        self._state = RouteBuilderState(
            transport_mode=default_transport_mode,
            points=create_initial_points(),
        )
        self._listeners: list[Listener] = []

    @property
    def state(self) -> RouteBuilderState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes: Any) -> None:
        previous = self._state
        current = replace(previous, **changes)
        if current.is_route_confirmed and "is_route_confirmed" not in changes and (
            current.points != previous.points or current.transport_mode != previous.transport_mode
        ):
            # A confirmed line no longer matches edited inputs.
            current = replace(current, is_route_confirmed=False)
        if current == previous:
            return
        self._state = current
        for listener in list(self._listeners):
            listener(previous, current)

    # Session lifecycle

    def start_building(self) -> None:
        self._set(
            is_building=True,
            route_name="",
            distance=0.0,
            eta=0.0,
            fare=0.0,
            discounted_fare=0.0,
            is_discount_auto=True,
            is_free=False,
            is_strict=False,
            transport_mode=self.default_transport_mode,
            route_geometry=None,
            is_route_confirmed=False,
            points=create_initial_points(),
            is_selecting_on_map=False,
            active_point_index=None,
        )

    def cancel_building(self) -> None:
        # Geometry, metrics and points stay so the last confirmed line remains visible.
        self._set(is_building=False, is_selecting_on_map=False, active_point_index=None)

    # Scalar fields

    def set_field(self, field: str, value: Any) -> None:
        if field not in BUILDER_FIELDS:
            raise ValueError(f"Unknown route builder field: {field}")

        state = self._state
        if field == "fare":
            if state.is_free:
                return
            fare = clamp_fare(value)
            discounted = calculate_discount(fare) if state.is_discount_auto else state.discounted_fare
            self._set(fare=fare, discounted_fare=discounted)
        elif field == "discounted_fare":
            if state.is_free:
                return
            parsed = parse_amount(value)
            if parsed.kind == "empty":
                self._set(discounted_fare=calculate_discount(state.fare), is_discount_auto=True)
            elif parsed.is_valid:
                self._set(discounted_fare=parsed.value, is_discount_auto=False)
            else:
                logger.debug(f"Ignoring invalid discounted fare input: {value!r}")
        elif field == "is_free":
            if bool(value):
                self._set(is_free=True, fare=0.0, discounted_fare=0.0, is_discount_auto=True)
            else:
                self._set(is_free=False)
        elif field in ("distance", "eta"):
            self._set(**{field: clamp_fare(value)})
        elif field == "is_strict":
            self._set(is_strict=bool(value))
        else:
            self._set(**{field: "" if value is None else str(value)})

    # Structural edits

    def add_waypoint(self) -> None:
        points = list(self._state.points)
        if len(points) < 2:
            return
        insert_index = len(points) - 1
        points.insert(
            insert_index,
            RoutePoint(id=uuid.uuid4().hex, stop_id=None, name="", role="waypoint", order=insert_index),
        )
        self._set(points=normalize_points(points))

    def remove_waypoint(self, index: int) -> None:
        points = self._state.points
        if not 0 <= index < len(points) or points[index].role != "waypoint":
            return
        self._set(points=normalize_points(points[:index] + points[index + 1 :]))

    def update_point(self, index: int, stop: Stop | None) -> None:
        points = list(self._state.points)
        if not 0 <= index < len(points):
            return
        if stop is None or not stop.id:
            points[index] = replace(points[index], stop_id=None, name="")
        else:
            points[index] = replace(points[index], stop_id=stop.id, name=stop.name)
        self._set(points=normalize_points(points))

    def swap_points(self, from_index: int, to_index: int) -> None:
        points = list(self._state.points)
        if not (0 <= from_index < len(points) and 0 <= to_index < len(points)):
            return
        moved = points.pop(from_index)
        points.insert(to_index, moved)
        self._set(points=normalize_points(points))

    # Map selection sub-mode

    def start_map_selection(self, index: int) -> None:
        if not 0 <= index < len(self._state.points):
            return
        self._set(is_selecting_on_map=True, active_point_index=index)

    def confirm_map_selection(self, stop: Stop) -> None:
        index = self._state.active_point_index
        if index is None:
            return
        points = list(self._state.points)
        if not 0 <= index < len(points):
            return
        points[index] = replace(points[index], stop_id=stop.id, name=stop.name)
        self._set(points=normalize_points(points), is_selecting_on_map=False, active_point_index=None)

    def cancel_map_selection(self) -> None:
        self._set(is_selecting_on_map=False, active_point_index=None)

    # Provider write-backs

    def set_route_geometry(self, geometry: RouteGeometry | None, *, confirmed: bool = False) -> None:
        self._set(route_geometry=geometry, is_route_confirmed=confirmed and geometry is not None)

    def set_route_metrics_from_api(self, distance_meters: float, duration_seconds: float) -> None:
        self._set(distance=float(distance_meters), eta=float(duration_seconds))
