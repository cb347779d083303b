"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Any

from shapely.geometry import LineString, mapping, shape
from shapely.errors import GeometryTypeError

from ..models.domain import RouteGeometry

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def geometry_from_geojson(value: Any) -> RouteGeometry | None:
    """Parse a GeoJSON LineString into a RouteGeometry.

    Returns None for anything that is not a LineString with at least two
    positions, so malformed provider or database payloads never reach state.
    """
    if not isinstance(value, dict) or value.get("type") != "LineString":
        return None
    try:
        line = shape(value)
    except (GeometryTypeError, ValueError, TypeError, IndexError):
        return None
    if not isinstance(line, LineString) or line.is_empty or len(line.coords) < 2:
        return None
    return RouteGeometry(coordinates=tuple((float(x), float(y)) for x, y, *_ in line.coords))


def geometry_to_geojson(geometry: RouteGeometry | None) -> dict | None:
    if geometry is None:
        return None
    line = LineString(geometry.coordinates)
    return {
        "type": "LineString",
        "coordinates": [list(position) for position in mapping(line)["coordinates"]],
    }


def path_length_km(geometry: RouteGeometry) -> float:
    """Great-circle length of a path; stands in for routes stored without provider metrics."""
    total = 0.0
    for (lon1, lat1), (lon2, lat2) in zip(geometry.coordinates, geometry.coordinates[1:]):
        total += haversine_km(lat1, lon1, lat2, lon2)
    return total
