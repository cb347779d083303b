"""Route builder request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from ..services.builder.models import RouteBuilderState, RoutePoint
from ..services.geospatial import geometry_to_geojson
from .routes import RouteStopModel, SavedRouteModel

BuilderField = Literal[
    "route_name",
    "distance",
    "eta",
    "fare",
    "discounted_fare",
    "is_free",
    "is_strict",
    "transport_mode",
]


class RoutePointModel(BaseModel):
    id: str
    stop_id: Optional[str] = None
    name: str
    role: Literal["origin", "destination", "waypoint"]
    order: int

    @classmethod
    def from_domain(cls, point: RoutePoint) -> "RoutePointModel":
        return cls(id=point.id, stop_id=point.stop_id, name=point.name, role=point.role, order=point.order)


class BuilderStateModel(BaseModel):
    is_building: bool
    route_name: str
    transport_mode: str
    distance: float
    eta: float
    fare: float
    discounted_fare: float
    is_discount_auto: bool
    is_free: bool
    is_strict: bool
    points: List[RoutePointModel]
    route_geometry: Optional[dict] = None
    is_route_confirmed: bool = False
    is_selecting_on_map: bool = False
    active_point_index: Optional[int] = None
    is_saving: bool = False

    @classmethod
    def from_state(cls, state: RouteBuilderState, *, is_saving: bool = False) -> "BuilderStateModel":
        return cls(
            is_building=state.is_building,
            route_name=state.route_name,
            transport_mode=state.transport_mode,
            distance=state.distance,
            eta=state.eta,
            fare=state.fare,
            discounted_fare=state.discounted_fare,
            is_discount_auto=state.is_discount_auto,
            is_free=state.is_free,
            is_strict=state.is_strict,
            points=[RoutePointModel.from_domain(point) for point in state.points],
            route_geometry=geometry_to_geojson(state.route_geometry),
            is_route_confirmed=state.is_route_confirmed,
            is_selecting_on_map=state.is_selecting_on_map,
            active_point_index=state.active_point_index,
            is_saving=is_saving,
        )


class SetFieldRequest(BaseModel):
    field: BuilderField
    # Strings are accepted so a cleared form input ("") can reach the discount rule.
    value: Union[bool, float, str, None] = None


class UpdatePointRequest(BaseModel):
    stop_id: Optional[str] = Field(default=None, description="Omit or null to clear the point.")


class MovePointRequest(BaseModel):
    from_index: int
    to_index: int


class ConfirmSelectionRequest(BaseModel):
    stop_id: str


class SaveRouteResponse(BaseModel):
    message: str
    route: SavedRouteModel
    route_stops: List[RouteStopModel]
    builder: BuilderStateModel
