"""HTTP client for the directions provider (Mapbox Directions or OSRM)."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

import httpx

from ...config import settings
from ...errors import DirectionsError, DirectionsNotConfiguredError
from ..geospatial import geometry_from_geojson
from .models import PathResult, Waypoint

DEFAULT_MAPBOX_DIRECTIONS_URL = "https://api.mapbox.com/directions/v5/mapbox"

# Provider codes meaning "the waypoints cannot be connected", as opposed to a failure.
NO_PATH_CODES = frozenset({"NoRoute", "NoSegment", "NoMatch"})

WALKING_MODES = frozenset({"walking", "walk"})

logger = logging.getLogger(__name__)


def profile_for_mode(transport_mode: str) -> str:
    """Select the provider profile for a transport mode.

    Every motorized mode (bus, jeepney, e-jeepney, tricycle) rides the road
    network, so they all share the driving profile.
    """
    return "walking" if transport_mode.strip().lower() in WALKING_MODES else "driving"


class DirectionsClient:
    def __init__(
        self,
        provider: str | None = None,
        base_url: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.provider = provider or settings.directions_provider
        self.access_token = access_token if access_token is not None else settings.mapbox_token
        if self.provider == "mapbox":
            if not self.access_token:
                raise DirectionsNotConfiguredError(
                    "Mapbox access token is missing. Please configure CW_MAPBOX_TOKEN."
                )
            self.base_url = (base_url or settings.directions_base_url or DEFAULT_MAPBOX_DIRECTIONS_URL).rstrip("/")
        elif self.provider == "osrm":
            resolved = base_url or settings.directions_base_url
            if not resolved:
                raise DirectionsNotConfiguredError(
                    "OSRM base URL is not configured. Please configure CW_DIRECTIONS_BASE_URL."
                )
            self.base_url = resolved.rstrip("/")
        else:
            raise DirectionsNotConfiguredError(f"Unknown directions provider '{self.provider}'.")
        self.timeout = timeout if timeout is not None else settings.directions_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.directions_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.directions_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        """Create a short-lived HTTP client for one route request."""
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self._transport,
        )

    def _build_request(
        self, waypoints: Sequence[Waypoint], profile: str, snap_radius_m: float
    ) -> tuple[str, dict]:
        # Both providers expect "lon,lat;lon,lat;..."
        coordinate_str = ";".join(f"{w.longitude},{w.latitude}" for w in waypoints)
        radius = f"{snap_radius_m:g}"
        params = {
            "geometries": "geojson",
            "overview": "full",
            "steps": "false",
            "radiuses": ";".join(radius for _ in waypoints),
        }
        if self.provider == "mapbox":
            params["access_token"] = self.access_token
            url = f"{self.base_url}/{profile}/{coordinate_str}"
        else:
            url = f"{self.base_url}/route/v1/{profile}/{coordinate_str}"
        return url, params

    async def route(
        self,
        waypoints: Sequence[Waypoint],
        profile: str = "driving",
        snap_radius_m: float | None = None,
    ) -> PathResult | None:
        """Compute a path through the ordered waypoints.

        Args:
            waypoints: Ordered stops to visit, origin first.
            profile: Provider profile (see ``profile_for_mode``).
            snap_radius_m: How far each waypoint may be moved onto the road network.

        Returns:
            The path with aggregate distance (meters) and duration (seconds), or
            None when the provider reports that no path connects the waypoints.

        Raises:
            DirectionsError: on network/HTTP failure after retries, or a malformed response.
        """
        if len(waypoints) < 2:
            raise ValueError("At least two waypoints are required for a route.")

        radius = snap_radius_m if snap_radius_m is not None else settings.directions_snap_radius_m
        url, params = self._build_request(waypoints, profile, radius)

        attempt = 0
        async with self._get_client() as client:
            while True:
                try:
                    response = await client.get(url, params=params)
                    if response.status_code in (400, 404, 422):
                        code, message = _error_details(response)
                        if code in NO_PATH_CODES:
                            logger.info(f"Directions provider found no path ({code}): {message}")
                            return None
                        raise DirectionsError(
                            f"Directions request rejected ({response.status_code} {code}): {message}"
                        )
                    response.raise_for_status()
                    data = response.json()
                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    if status_code < 500 or attempt >= self.max_retries:
                        raise DirectionsError(f"Directions request failed with HTTP {status_code}") from e
                    logger.debug(f"Directions HTTP {status_code}, retrying (attempt {attempt + 1}/{self.max_retries})")
                except httpx.TimeoutException as e:
                    if attempt >= self.max_retries:
                        logger.warning(f"Directions request timed out after {attempt + 1} attempts: {e}")
                        raise DirectionsError("Directions request timed out") from e
                    logger.debug(f"Directions timeout, retrying (attempt {attempt + 1}/{self.max_retries})")
                except httpx.TransportError as e:
                    if attempt >= self.max_retries:
                        raise DirectionsError(
                            f"Failed to connect to directions service at {self.base_url}: {e}"
                        ) from e
                    logger.debug(f"Directions network error, retrying (attempt {attempt + 1}/{self.max_retries}): {e}")
                except ValueError as e:
                    raise DirectionsError("Directions response is not valid JSON") from e
                else:
                    return _parse_route(data)

                attempt += 1
                await asyncio.sleep(self.backoff_seconds * (2 ** (attempt - 1)))

    async def check_health(self) -> bool:
        """Request a short path between two fixed points (Manila area)."""
        probe = [
            Waypoint(id="probe-a", latitude=14.5995, longitude=120.9842),
            Waypoint(id="probe-b", latitude=14.6042, longitude=120.9822),
        ]
        try:
            return await self.route(probe) is not None
        except DirectionsError:
            return False


def _error_details(response: httpx.Response) -> tuple[str, str]:
    try:
        payload = response.json()
    except ValueError:
        return "", response.text[:200]
    if not isinstance(payload, dict):
        return "", ""
    return str(payload.get("code", "")), str(payload.get("message", ""))


def _parse_route(data: dict) -> PathResult | None:
    if not isinstance(data, dict):
        raise DirectionsError("Directions response is not a JSON object")

    code = data.get("code")
    if code in NO_PATH_CODES:
        return None
    if code != "Ok":
        raise DirectionsError(f"Directions request failed: {data.get('message', code or 'unknown error')}")

    routes = data.get("routes") or []
    if not routes:
        return None

    try:
        best = routes[0]
        geometry = geometry_from_geojson(best.get("geometry"))
        distance = float(best.get("distance") or 0.0)
        duration = float(best.get("duration") or 0.0)
    except (TypeError, ValueError, AttributeError, KeyError) as e:
        raise DirectionsError("Malformed directions response") from e

    if geometry is None:
        logger.warning("Directions response carried no usable LineString geometry")
        return None

    return PathResult(geometry=geometry, distance=distance, duration=duration)
