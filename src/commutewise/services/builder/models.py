"""Route builder domain models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from ...models.domain import RouteGeometry

PointRole = Literal["origin", "destination", "waypoint"]

DEFAULT_TRANSPORT_MODE = "Jeepney"


@dataclass(frozen=True, slots=True)
class RoutePoint:
    """One slot of a route being built; ``role`` and ``order`` follow position."""

    id: str
    stop_id: Optional[str]
    name: str
    role: PointRole
    order: int


@dataclass(frozen=True, slots=True)
class RouteBuilderState:
    is_building: bool = False
    route_name: str = ""

    # Metrics from the directions provider: meters and seconds.
    distance: float = 0.0
    eta: float = 0.0

    fare: float = 0.0
    discounted_fare: float = 0.0
    # False once the discounted fare has been overridden by hand.
    is_discount_auto: bool = True
    is_free: bool = False
    is_strict: bool = False
    transport_mode: str = DEFAULT_TRANSPORT_MODE

    points: tuple[RoutePoint, ...] = ()
    route_geometry: Optional[RouteGeometry] = None
    # Set when the geometry came from a save rather than a live preview.
    is_route_confirmed: bool = False

    is_selecting_on_map: bool = False
    active_point_index: Optional[int] = None

    @property
    def has_preview(self) -> bool:
        return self.route_geometry is not None or self.distance != 0 or self.eta != 0
