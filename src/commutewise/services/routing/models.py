"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass

from ...models.domain import RouteGeometry


@dataclass(frozen=True, slots=True)
class Waypoint:
    id: str
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class PathResult:
    geometry: RouteGeometry
    distance: float  # meters
    duration: float  # seconds
