"""Live path preview for the route being built.

Whenever the building flag, the points, the transport mode or the stop
collection change, the engine resolves the points and asks the directions
provider for a path. Only the most recently issued request may write its
result back into the builder store.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from ...config import settings
from ...data.stops_repository import StopCatalog
from ...errors import DirectionsError
from ..routing.directions_client import DirectionsClient, profile_for_mode
from ..routing.models import PathResult, Waypoint
from .models import RouteBuilderState
from .resolver import resolve_route_stops
from .store import RouteBuilderStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PreviewToken:
    request_id: int
    cancelled: bool = False


def _dependencies(state: RouteBuilderState) -> tuple:
    return (state.is_building, state.points, state.transport_mode)


class RoutePreviewEngine:
    def __init__(
        self,
        builder: RouteBuilderStore,
        catalog: StopCatalog,
        directions: DirectionsClient | None,
        snap_radius_m: float | None = None,
    ) -> None:
        self._builder = builder
        self._catalog = catalog
        self._directions = directions
        self.snap_radius_m = snap_radius_m if snap_radius_m is not None else settings.directions_snap_radius_m
        self._latest_request_id = 0
        self._current: PreviewToken | None = None
        self._tasks: set[asyncio.Task] = set()
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def latest_request_id(self) -> int:
        return self._latest_request_id

    def start(self) -> None:
        if self._unsubscribers:
            return
        self._unsubscribers = [
            self._builder.subscribe(self._on_builder_change),
            self._catalog.subscribe(self.refresh),
        ]

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._cancel_current()

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_builder_change(self, previous: RouteBuilderState, current: RouteBuilderState) -> None:
        # Geometry/metric write-backs do not change the dependencies and must not loop.
        if _dependencies(previous) != _dependencies(current):
            self.refresh()

    def _cancel_current(self) -> None:
        if self._current is not None:
            self._current.cancelled = True
            self._current = None

    def _clear_if_needed(self) -> None:
        if self._builder.state.has_preview:
            self._builder.set_route_geometry(None)
            self._builder.set_route_metrics_from_api(0, 0)

    def refresh(self) -> asyncio.Task | None:
        """Re-evaluate the preview; returns the request task when one was issued."""
        self._cancel_current()
        state = self._builder.state

        if not state.is_building:
            # A line confirmed by a save stays on the map after the builder closes.
            if not state.is_route_confirmed:
                self._clear_if_needed()
            return None

        if len(state.points) < 2:
            self._clear_if_needed()
            return None

        resolution = resolve_route_stops(state.points, self._catalog.stops)
        if not resolution.ready:
            self._clear_if_needed()
            return None

        if self._directions is None:
            logger.warning("Directions provider is not configured; cannot compute route preview")
            self._clear_if_needed()
            return None

        self._latest_request_id += 1
        token = PreviewToken(request_id=self._latest_request_id)
        self._current = token

        waypoints = [Waypoint(id=s.id, latitude=s.latitude, longitude=s.longitude) for s in resolution.stops]
        profile = profile_for_mode(state.transport_mode)

        task = asyncio.get_running_loop().create_task(self._run(token, waypoints, profile))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _is_stale(self, token: PreviewToken) -> bool:
        return token.cancelled or token.request_id != self._latest_request_id

    async def _run(self, token: PreviewToken, waypoints: list[Waypoint], profile: str) -> None:
        try:
            result: PathResult | None = await self._directions.route(
                waypoints, profile=profile, snap_radius_m=self.snap_radius_m
            )
        except DirectionsError as e:
            logger.warning(f"Failed to calculate route preview (request {token.request_id}): {e}")
            if not self._is_stale(token):
                self._clear_if_needed()
            return

        if self._is_stale(token):
            logger.debug(f"Dropping stale route preview (request {token.request_id})")
            return

        if self._builder.state.is_route_confirmed:
            # A save already wrote the final path for these inputs.
            return

        if result is None:
            self._clear_if_needed()
            return

        self._builder.set_route_geometry(result.geometry)
        self._builder.set_route_metrics_from_api(result.distance, result.duration)
