"""Reverse geocoding of stop coordinates to an administrative-area label."""

from __future__ import annotations

import logging
import time
from typing import Callable

import httpx

from ..config import settings

logger = logging.getLogger(__name__)


class GeocodingClient:
    """Mapbox reverse geocoder with a client-side throttle.

    Calls made less than ``throttle_seconds`` after the previous network call
    return None immediately without touching the network.
    """

    def __init__(
        self,
        access_token: str | None = None,
        base_url: str | None = None,
        throttle_seconds: float | None = None,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.access_token = access_token if access_token is not None else settings.mapbox_token
        if not self.access_token:
            raise ValueError("Mapbox access token is not configured.")
        self.base_url = (base_url or settings.geocoding_base_url).rstrip("/")
        self.throttle_seconds = (
            throttle_seconds if throttle_seconds is not None else settings.geocoding_throttle_seconds
        )
        self.timeout = timeout
        self._clock = clock
        self._transport = transport
        self._last_call: float | None = None

    async def lookup_area(self, latitude: float, longitude: float) -> str | None:
        now = self._clock()
        if self._last_call is not None and now - self._last_call < self.throttle_seconds:
            logger.warning("Geocoding throttled; skipping lookup")
            return None
        self._last_call = now

        # Neighborhood/locality results carry the barangay-level names we store on stops.
        url = f"{self.base_url}/{longitude},{latitude}.json"
        params = {"types": "neighborhood,locality", "access_token": self.access_token}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching area for ({latitude}, {longitude}): {e}")
            return None

        features = data.get("features") if isinstance(data, dict) else None
        if not isinstance(features, list) or not features or not isinstance(features[0], dict):
            return None
        text = features[0].get("text")
        return text if isinstance(text, str) and text else None
