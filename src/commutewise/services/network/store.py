"""Cached view of the persisted route network plus UI selection state."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Optional

from ...errors import ConfigurationError, PersistenceError
from ...models.domain import RouteStopAttachment, SavedRoute
from ...persistence.database import RouteRepository, RouteStopRepository
from ..builder.fares import calculate_discount

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RouteMetaEdit:
    """Editable route metadata; geometry and stop attachments are fixed after creation."""

    name: str
    vehicle_type: str
    fare_amount: float
    discounted_fare_amount: Optional[float] = None
    is_strict: bool = False


def _safe_amount(value: float) -> float:
    return max(0.0, value) if math.isfinite(value) else 0.0


class RouteNetwork:
    """Holds every saved route and stop attachment for list and map views.

    Only ``reload``, ``update_route_meta`` and ``delete_route`` touch storage;
    hover, focus and editing selections are in-memory only.
    """

    def __init__(self, routes: RouteRepository, route_stops: RouteStopRepository) -> None:
        self._routes_repo = routes
        self._route_stops_repo = route_stops

        self.routes: tuple[SavedRoute, ...] = ()
        self.attachments: tuple[RouteStopAttachment, ...] = ()
        self.is_loading = False
        self.error: str | None = None

        self.hover_route_id: str | None = None
        self.focused_terminal_id: str | None = None
        self.editing_route: SavedRoute | None = None

        self._reload_generation = 0

    def get(self, route_id: str) -> SavedRoute | None:
        for route in self.routes:
            if route.id == route_id:
                return route
        return None

    async def reload(self) -> None:
        """Fetch routes and attachments; only the most recently started reload installs its result."""
        self._reload_generation += 1
        generation = self._reload_generation
        self.is_loading = True
        self.error = None
        try:
            # list_all() degrades to [] on its own; only the route fetch can fail here.
            routes, attachments = await asyncio.gather(
                self._routes_repo.list(),
                self._route_stops_repo.list_all(),
            )
        except (PersistenceError, ConfigurationError) as e:
            logger.error(f"Failed to reload route network: {e}")
            if generation == self._reload_generation:
                self.error = str(e)
                self.is_loading = False
            return

        if generation != self._reload_generation:
            logger.debug(f"Dropping superseded route network reload ({generation})")
            return

        self.is_loading = False
        self.routes = tuple(routes)
        self.attachments = tuple(attachments)
        if self.editing_route is not None:
            self.editing_route = self.get(self.editing_route.id)

    def set_hover_route_id(self, route_id: str | None) -> None:
        self.hover_route_id = route_id

    def set_focused_terminal_id(self, terminal_id: str | None) -> None:
        self.focused_terminal_id = terminal_id

    def start_edit_route(self, route_id: str) -> SavedRoute:
        route = self.get(route_id)
        if route is None:
            raise KeyError(route_id)
        self.editing_route = route
        return route

    def clear_editing_route(self) -> None:
        self.editing_route = None

    async def update_route_meta(self, route_id: str, edit: RouteMetaEdit) -> SavedRoute:
        current = self.get(route_id)
        name = edit.name.strip() or (current.name if current else "")
        fare = _safe_amount(edit.fare_amount)
        if edit.discounted_fare_amount is None:
            discounted = calculate_discount(fare)
        else:
            discounted = _safe_amount(edit.discounted_fare_amount)

        updated = await self._routes_repo.update_meta(
            route_id,
            name=name,
            vehicle_type=edit.vehicle_type,
            fare_amount=fare,
            discounted_fare_amount=discounted,
            is_strict=edit.is_strict,
        )
        await self.reload()
        self.clear_editing_route()
        return updated

    async def delete_route(self, route_id: str) -> None:
        await self._routes_repo.delete(route_id)
        if self.hover_route_id == route_id:
            self.hover_route_id = None
        if self.editing_route is not None and self.editing_route.id == route_id:
            self.editing_route = None
        await self.reload()
