"""Route network request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.domain import RouteStopAttachment, SavedRoute
from ..services.geospatial import geometry_to_geojson, path_length_km
from .stops import StopModel


class RouteStopModel(BaseModel):
    id: Optional[str] = None
    route_id: str
    stop_id: str
    sequence: int
    fare_amount: Optional[float] = None
    discounted_fare_amount: Optional[float] = None

    @classmethod
    def from_domain(cls, attachment: RouteStopAttachment) -> "RouteStopModel":
        return cls(
            id=attachment.id,
            route_id=attachment.route_id,
            stop_id=attachment.stop_id,
            sequence=attachment.sequence,
            fare_amount=attachment.fare_amount,
            discounted_fare_amount=attachment.discounted_fare_amount,
        )


class SavedRouteModel(BaseModel):
    id: str
    name: str
    vehicle_type: str
    origin_id: Optional[str] = None
    destination_id: Optional[str] = None
    geometry: Optional[dict] = None
    distance_m: Optional[float] = None
    duration_sec: Optional[float] = None
    distance_km: Optional[float] = None
    duration_min: Optional[float] = None
    fare_amount: Optional[float] = None
    discounted_fare_amount: Optional[float] = None
    is_strict: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, route: SavedRoute) -> "SavedRouteModel":
        if route.distance_m is not None:
            distance_km = round(route.distance_m / 1000, 2)
        elif route.geometry is not None:
            # Rows without stored metrics still get an approximate length from the line.
            distance_km = round(path_length_km(route.geometry), 2)
        else:
            distance_km = None
        return cls(
            id=route.id,
            name=route.name,
            vehicle_type=route.vehicle_type,
            origin_id=route.origin_id,
            destination_id=route.destination_id,
            geometry=geometry_to_geojson(route.geometry),
            distance_m=route.distance_m,
            duration_sec=route.duration_sec,
            distance_km=distance_km,
            duration_min=round(route.duration_sec / 60, 1) if route.duration_sec is not None else None,
            fare_amount=route.fare_amount,
            discounted_fare_amount=route.discounted_fare_amount,
            is_strict=route.is_strict,
            created_at=route.created_at,
        )


class RouteNetworkResponse(BaseModel):
    routes: List[SavedRouteModel]
    route_stops: List[RouteStopModel]
    is_loading: bool = False
    error: Optional[str] = None
    hover_route_id: Optional[str] = None
    focused_terminal_id: Optional[str] = None
    editing_route: Optional[SavedRouteModel] = None


class TerminalRoutesModel(BaseModel):
    terminal: StopModel
    routes: List[SavedRouteModel]
    route_stops: Dict[str, List[StopModel]] = Field(
        default_factory=dict,
        description="Ordered stops per route id.",
    )


class RouteMetaUpdateRequest(BaseModel):
    name: str = ""
    vehicle_type: str = Field(..., min_length=1)
    fare_amount: float = 0.0
    discounted_fare_amount: Optional[float] = Field(
        default=None,
        description="Omit to derive it automatically from the fare (20% off).",
    )
    is_strict: bool = False


class SelectionRequest(BaseModel):
    id: Optional[str] = None
