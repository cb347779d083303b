"""Domain models for stops, saved routes and their stop attachments."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

StopKind = Literal["terminal", "stop"]


@dataclass(frozen=True, slots=True)
class RouteGeometry:
    """A travel path as (longitude, latitude) pairs, GeoJSON axis order."""

    coordinates: tuple[tuple[float, float], ...]


@dataclass(frozen=True, slots=True)
class Stop:
    """A terminal or ordinary stop drawn on the network map."""

    id: str
    name: str
    kind: StopKind
    latitude: float
    longitude: float
    vehicle_types: tuple[str, ...] = ()
    area: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.kind == "terminal"

    def serves(self, vehicle_type: str) -> bool:
        wanted = vehicle_type.strip().lower()
        return any(v.strip().lower() == wanted for v in self.vehicle_types)


@dataclass(slots=True)
class SavedRoute:
    """A route row as persisted in the ``routes`` table."""

    id: str
    name: str
    vehicle_type: str
    origin_id: Optional[str]
    destination_id: Optional[str]
    geometry: Optional[RouteGeometry]
    distance_m: Optional[float]
    duration_sec: Optional[float]
    fare_amount: Optional[float]
    discounted_fare_amount: Optional[float]
    is_strict: bool = False
    created_at: Optional[datetime] = None


@dataclass(slots=True)
class RouteStopAttachment:
    """Ordered association of a stop with a saved route (``route_stops``)."""

    route_id: str
    stop_id: str
    sequence: int
    fare_amount: Optional[float]
    discounted_fare_amount: Optional[float]
    id: Optional[str] = None


@dataclass(slots=True)
class RouteDraft:
    """Everything needed to insert a new route row."""

    name: str
    vehicle_type: str
    origin_id: str
    destination_id: str
    geometry: RouteGeometry
    distance_m: float
    duration_sec: float
    fare_amount: float
    discounted_fare_amount: float
    is_strict: bool = False
