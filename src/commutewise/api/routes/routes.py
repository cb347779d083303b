"""Route network endpoints: listing, grouping, selection and metadata edits."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ...data.stops_repository import StopCatalog
from ...errors import ConfigurationError, PersistenceError
from ...schemas.routes import (
    RouteMetaUpdateRequest,
    RouteNetworkResponse,
    RouteStopModel,
    SavedRouteModel,
    SelectionRequest,
    TerminalRoutesModel,
)
from ...schemas.stops import StopModel
from ...services.network.grouping import group_routes_by_terminal, ordered_route_stops
from ...services.network.store import RouteMetaEdit, RouteNetwork
from ..dependencies import get_catalog, get_network

router = APIRouter(prefix="/routes", tags=["routes"])


def _network_response(network: RouteNetwork) -> RouteNetworkResponse:
    return RouteNetworkResponse(
        routes=[SavedRouteModel.from_domain(route) for route in network.routes],
        route_stops=[RouteStopModel.from_domain(attachment) for attachment in network.attachments],
        is_loading=network.is_loading,
        error=network.error,
        hover_route_id=network.hover_route_id,
        focused_terminal_id=network.focused_terminal_id,
        editing_route=SavedRouteModel.from_domain(network.editing_route) if network.editing_route else None,
    )


def _storage_error(action: str, exc: Exception) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    logging.exception(f"Error trying to {action}: {exc}")
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to {action}: {str(exc)}")


@router.get("", response_model=RouteNetworkResponse)
async def list_routes(network: RouteNetwork = Depends(get_network)) -> RouteNetworkResponse:
    return _network_response(network)


@router.post("/reload", response_model=RouteNetworkResponse)
async def reload_routes(request: Request, network: RouteNetwork = Depends(get_network)) -> RouteNetworkResponse:
    await network.reload()
    if network.error:
        code = status.HTTP_503_SERVICE_UNAVAILABLE if request.app.state.supabase is None else status.HTTP_502_BAD_GATEWAY
        raise HTTPException(status_code=code, detail=network.error)
    return _network_response(network)


@router.get("/by-terminal", response_model=List[TerminalRoutesModel])
async def routes_by_terminal(
    vehicle_type: Optional[str] = Query(default=None),
    network: RouteNetwork = Depends(get_network),
    catalog: StopCatalog = Depends(get_catalog),
) -> List[TerminalRoutesModel]:
    """Saved routes grouped under the terminal they start from."""
    grouped = group_routes_by_terminal(network.routes, network.attachments, catalog.stops, vehicle_type)
    result: List[TerminalRoutesModel] = []
    for terminal_id, routes in grouped.items():
        terminal = catalog.get(terminal_id)
        if terminal is None:
            continue
        result.append(
            TerminalRoutesModel(
                terminal=StopModel.from_domain(terminal),
                routes=[SavedRouteModel.from_domain(route) for route in routes],
                route_stops={
                    route.id: [
                        StopModel.from_domain(stop)
                        for stop in ordered_route_stops(route, network.attachments, catalog.stops)
                    ]
                    for route in routes
                },
            )
        )
    return result


@router.put("/hover", response_model=RouteNetworkResponse)
async def set_hover_route(
    payload: SelectionRequest,
    network: RouteNetwork = Depends(get_network),
) -> RouteNetworkResponse:
    network.set_hover_route_id(payload.id)
    return _network_response(network)


@router.put("/focus", response_model=RouteNetworkResponse)
async def set_focused_terminal(
    payload: SelectionRequest,
    network: RouteNetwork = Depends(get_network),
) -> RouteNetworkResponse:
    network.set_focused_terminal_id(payload.id)
    return _network_response(network)


@router.delete("/editing", response_model=RouteNetworkResponse)
async def clear_editing_route(network: RouteNetwork = Depends(get_network)) -> RouteNetworkResponse:
    network.clear_editing_route()
    return _network_response(network)


@router.post("/{route_id}/edit", response_model=SavedRouteModel)
async def start_edit_route(route_id: str, network: RouteNetwork = Depends(get_network)) -> SavedRouteModel:
    try:
        route = network.start_edit_route(route_id)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Route {route_id} not found") from exc
    return SavedRouteModel.from_domain(route)


@router.get("/{route_id}/stops", response_model=List[StopModel])
async def route_stops(
    route_id: str,
    network: RouteNetwork = Depends(get_network),
    catalog: StopCatalog = Depends(get_catalog),
) -> List[StopModel]:
    route = network.get(route_id)
    if route is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Route {route_id} not found")
    return [
        StopModel.from_domain(stop)
        for stop in ordered_route_stops(route, network.attachments, catalog.stops)
    ]


@router.patch("/{route_id}", response_model=SavedRouteModel)
async def update_route_meta(
    route_id: str,
    payload: RouteMetaUpdateRequest,
    network: RouteNetwork = Depends(get_network),
) -> SavedRouteModel:
    edit = RouteMetaEdit(
        name=payload.name,
        vehicle_type=payload.vehicle_type,
        fare_amount=payload.fare_amount,
        discounted_fare_amount=payload.discounted_fare_amount,
        is_strict=payload.is_strict,
    )
    try:
        updated = await network.update_route_meta(route_id, edit)
    except (PersistenceError, ConfigurationError) as exc:
        raise _storage_error("update route", exc) from exc
    except Exception as exc:
        logging.exception(f"Error updating route {route_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update route: {str(exc)}",
        ) from exc
    return SavedRouteModel.from_domain(updated)


@router.delete("/{route_id}", status_code=status.HTTP_200_OK)
async def delete_route(route_id: str, network: RouteNetwork = Depends(get_network)) -> dict:
    try:
        await network.delete_route(route_id)
    except (PersistenceError, ConfigurationError) as exc:
        raise _storage_error("delete route", exc) from exc
    return {"success": True, "message": f"Route {route_id} deleted"}
