"""Commit of the route being built: final path, route row, ordered stop rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from ...config import settings
from ...data.stops_repository import StopCatalog
from ...errors import (
    DirectionsNotConfiguredError,
    PartialSaveError,
    PathUnavailableError,
    PersistenceError,
    RouteValidationError,
    SaveInProgressError,
)
from ...models.domain import RouteDraft, RouteStopAttachment, SavedRoute
from ...persistence.database import RouteRepository, RouteStopRepository
from ..network.store import RouteNetwork
from ..routing.directions_client import DirectionsClient, profile_for_mode
from ..routing.models import Waypoint
from .resolver import resolve_route_stops, validate_route
from .store import RouteBuilderStore

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Route saved successfully."


@dataclass(slots=True)
class SaveResult:
    route: SavedRoute
    attachments: list[RouteStopAttachment] = field(default_factory=list)
    message: str = SUCCESS_MESSAGE


class RouteSavePipeline:
    """Runs one explicit save of the builder state.

    The route row and its stop rows are written in two steps without a
    transaction: if the second write fails the route row stays and
    ``PartialSaveError`` reports it.
    """

    def __init__(
        self,
        builder: RouteBuilderStore,
        catalog: StopCatalog,
        directions: DirectionsClient | None,
        routes: RouteRepository,
        route_stops: RouteStopRepository,
        network: RouteNetwork | None = None,
        transport_modes: Iterable[str] | None = None,
        snap_radius_m: float | None = None,
    ) -> None:
        self._builder = builder
        self._catalog = catalog
        self._directions = directions
        self._routes = routes
        self._route_stops = route_stops
        self._network = network
        self.transport_modes = tuple(transport_modes if transport_modes is not None else settings.transport_modes)
        self.snap_radius_m = snap_radius_m if snap_radius_m is not None else settings.directions_snap_radius_m
        self._is_saving = False

    @property
    def is_saving(self) -> bool:
        return self._is_saving

    async def save(self) -> SaveResult:
        if self._is_saving:
            raise SaveInProgressError("A route save is already in progress.")

        state = self._builder.state
        stops = self._catalog.stops

        errors = validate_route(state, stops, self.transport_modes)
        if errors:
            raise RouteValidationError(errors)

        if self._directions is None:
            raise DirectionsNotConfiguredError("Directions provider is not configured; cannot save routes.")

        self._is_saving = True
        try:
            resolution = resolve_route_stops(state.points, stops)
            if not resolution.ready:
                # Stops can disappear between validation and here only through a concurrent reload.
                raise RouteValidationError(["Route stops changed while saving. Please review the route."])
            ordered_stops = resolution.stops

            path = await self._directions.route(
                [Waypoint(id=s.id, latitude=s.latitude, longitude=s.longitude) for s in ordered_stops],
                profile=profile_for_mode(state.transport_mode),
                snap_radius_m=self.snap_radius_m,
            )
            if path is None:
                raise PathUnavailableError("Unable to calculate route path. Please adjust the stops.")

            # Shown on the map even if persistence below fails.
            self._builder.set_route_geometry(path.geometry, confirmed=True)
            self._builder.set_route_metrics_from_api(path.distance, path.duration)

            effective_fare = 0.0 if state.is_free else state.fare
            effective_discounted_fare = 0.0 if state.is_free else state.discounted_fare

            saved = await self._routes.create(
                RouteDraft(
                    name=state.route_name.strip(),
                    vehicle_type=state.transport_mode.lower(),
                    origin_id=resolution.origin.id,
                    destination_id=resolution.destination.id,
                    geometry=path.geometry,
                    distance_m=path.distance,
                    duration_sec=path.duration,
                    fare_amount=effective_fare,
                    discounted_fare_amount=effective_discounted_fare,
                    is_strict=state.is_strict,
                )
            )

            # Per-stop fares are seeded from the route fare.
            attachments = [
                RouteStopAttachment(
                    route_id=saved.id,
                    stop_id=stop.id,
                    sequence=index,
                    fare_amount=effective_fare,
                    discounted_fare_amount=effective_discounted_fare,
                )
                for index, stop in enumerate(ordered_stops)
            ]
            try:
                await self._route_stops.bulk_create(saved.id, attachments)
            except PersistenceError as e:
                logger.error(f"Route {saved.id} saved without its stops: {e}")
                if self._network is not None:
                    await self._network.reload()
                raise PartialSaveError(
                    f"Route '{saved.name}' was saved but its stops were not. "
                    f"Retry or delete route {saved.id}.",
                    route=saved,
                ) from e

            logger.info(f"Saved route {saved.id} '{saved.name}' with {len(attachments)} stops")
            self._builder.cancel_building()
            if self._network is not None:
                await self._network.reload()
            return SaveResult(route=saved, attachments=attachments)
        finally:
            self._is_saving = False
