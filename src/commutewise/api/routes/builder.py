"""Route builder endpoints: session lifecycle, point editing and save."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...data.stops_repository import StopCatalog
from ...errors import (
    ConfigurationError,
    DirectionsError,
    PartialSaveError,
    PathUnavailableError,
    PersistenceError,
    RouteValidationError,
    SaveInProgressError,
)
from ...models.domain import Stop
from ...schemas.builder import (
    BuilderStateModel,
    ConfirmSelectionRequest,
    MovePointRequest,
    SaveRouteResponse,
    SetFieldRequest,
    UpdatePointRequest,
)
from ...schemas.routes import RouteStopModel, SavedRouteModel
from ...services.builder.save import RouteSavePipeline
from ...services.builder.store import RouteBuilderStore
from ..dependencies import get_builder, get_catalog, get_save_pipeline

router = APIRouter(prefix="/builder", tags=["builder"])


def _state(builder: RouteBuilderStore, pipeline: RouteSavePipeline) -> BuilderStateModel:
    return BuilderStateModel.from_state(builder.state, is_saving=pipeline.is_saving)


def _require_stop(catalog: StopCatalog, stop_id: str) -> Stop:
    stop = catalog.get(stop_id)
    if stop is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Stop {stop_id} not found")
    return stop


@router.get("", response_model=BuilderStateModel)
async def get_state(
    builder: RouteBuilderStore = Depends(get_builder),
    pipeline: RouteSavePipeline = Depends(get_save_pipeline),
) -> BuilderStateModel:
    return _state(builder, pipeline)


@router.post("/start", response_model=BuilderStateModel)
async def start_building(
    builder: RouteBuilderStore = Depends(get_builder),
    pipeline: RouteSavePipeline = Depends(get_save_pipeline),
) -> BuilderStateModel:
    builder.start_building()
    return _state(builder, pipeline)


@router.post("/cancel", response_model=BuilderStateModel)
async def cancel_building(
    builder: RouteBuilderStore = Depends(get_builder),
    pipeline: RouteSavePipeline = Depends(get_save_pipeline),
) -> BuilderStateModel:
    builder.cancel_building()
    return _state(builder, pipeline)


@router.patch("/fields", response_model=BuilderStateModel)
async def set_field(
    payload: SetFieldRequest,
    builder: RouteBuilderStore = Depends(get_builder),
    pipeline: RouteSavePipeline = Depends(get_save_pipeline),
) -> BuilderStateModel:
    try:
        builder.set_field(payload.field, payload.value)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _state(builder, pipeline)


@router.post("/waypoints", response_model=BuilderStateModel)
async def add_waypoint(
    builder: RouteBuilderStore = Depends(get_builder),
    pipeline: RouteSavePipeline = Depends(get_save_pipeline),
) -> BuilderStateModel:
    builder.add_waypoint()
    return _state(builder, pipeline)


@router.delete("/waypoints/{index}", response_model=BuilderStateModel)
async def remove_waypoint(
    index: int,
    builder: RouteBuilderStore = Depends(get_builder),
    pipeline: RouteSavePipeline = Depends(get_save_pipeline),
) -> BuilderStateModel:
    builder.remove_waypoint(index)
    return _state(builder, pipeline)


@router.put("/points/{index}", response_model=BuilderStateModel)
async def update_point(
    index: int,
    payload: UpdatePointRequest,
    builder: RouteBuilderStore = Depends(get_builder),
    catalog: StopCatalog = Depends(get_catalog),
    pipeline: RouteSavePipeline = Depends(get_save_pipeline),
) -> BuilderStateModel:
    stop = _require_stop(catalog, payload.stop_id) if payload.stop_id else None
    builder.update_point(index, stop)
    return _state(builder, pipeline)


@router.post("/points/move", response_model=BuilderStateModel)
async def move_point(
    payload: MovePointRequest,
    builder: RouteBuilderStore = Depends(get_builder),
    pipeline: RouteSavePipeline = Depends(get_save_pipeline),
) -> BuilderStateModel:
    builder.swap_points(payload.from_index, payload.to_index)
    return _state(builder, pipeline)


@router.post("/map-selection/confirm", response_model=BuilderStateModel)
async def confirm_map_selection(
    payload: ConfirmSelectionRequest,
    builder: RouteBuilderStore = Depends(get_builder),
    catalog: StopCatalog = Depends(get_catalog),
    pipeline: RouteSavePipeline = Depends(get_save_pipeline),
) -> BuilderStateModel:
    builder.confirm_map_selection(_require_stop(catalog, payload.stop_id))
    return _state(builder, pipeline)


@router.post("/map-selection/{index}", response_model=BuilderStateModel)
async def start_map_selection(
    index: int,
    builder: RouteBuilderStore = Depends(get_builder),
    pipeline: RouteSavePipeline = Depends(get_save_pipeline),
) -> BuilderStateModel:
    builder.start_map_selection(index)
    return _state(builder, pipeline)


@router.delete("/map-selection", response_model=BuilderStateModel)
async def cancel_map_selection(
    builder: RouteBuilderStore = Depends(get_builder),
    pipeline: RouteSavePipeline = Depends(get_save_pipeline),
) -> BuilderStateModel:
    builder.cancel_map_selection()
    return _state(builder, pipeline)


@router.post("/save", response_model=SaveRouteResponse, status_code=status.HTTP_201_CREATED)
async def save_route(
    builder: RouteBuilderStore = Depends(get_builder),
    pipeline: RouteSavePipeline = Depends(get_save_pipeline),
) -> SaveRouteResponse:
    try:
        result = await pipeline.save()
    except SaveInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RouteValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Route is incomplete.", "errors": exc.messages},
        ) from exc
    except ConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except PathUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except PartialSaveError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": str(exc), "route_id": exc.route.id},
        ) from exc
    except (DirectionsError, PersistenceError) as exc:
        logging.exception(f"Error saving route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to save route: {str(exc)}",
        ) from exc
    except Exception as exc:
        logging.exception(f"Unexpected error saving route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save route: {str(exc)}",
        ) from exc

    return SaveRouteResponse(
        message=result.message,
        route=SavedRouteModel.from_domain(result.route),
        route_stops=[RouteStopModel.from_domain(attachment) for attachment in result.attachments],
        builder=_state(builder, pipeline),
    )
