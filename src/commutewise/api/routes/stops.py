"""Stop catalog endpoints."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...data.stops_repository import StopCatalog
from ...errors import ConfigurationError, PersistenceError
from ...schemas.stops import StopModel, StopUpsertRequest
from ...services.network.grouping import terminals_by_area
from ..dependencies import get_catalog

router = APIRouter(prefix="/stops", tags=["stops"])


def _storage_error(action: str, exc: Exception) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    logging.exception(f"Error trying to {action}: {exc}")
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to {action}: {str(exc)}")


@router.get("", response_model=List[StopModel])
async def list_stops(
    kind: Optional[str] = Query(default=None, pattern="^(terminal|stop)$"),
    catalog: StopCatalog = Depends(get_catalog),
) -> List[StopModel]:
    return [StopModel.from_domain(stop) for stop in catalog.stops if kind is None or stop.kind == kind]


@router.post("/reload", response_model=List[StopModel])
async def reload_stops(catalog: StopCatalog = Depends(get_catalog)) -> List[StopModel]:
    try:
        stops = await catalog.reload()
    except (PersistenceError, ConfigurationError) as exc:
        raise _storage_error("reload stops", exc) from exc
    return [StopModel.from_domain(stop) for stop in stops]


@router.get("/terminals-by-area", response_model=Dict[str, List[StopModel]])
async def list_terminals_by_area(
    vehicle_type: Optional[str] = Query(default=None),
    q: str = Query(default=""),
    catalog: StopCatalog = Depends(get_catalog),
) -> Dict[str, List[StopModel]]:
    grouped = terminals_by_area(catalog.stops, vehicle_type=vehicle_type, query=q)
    return {area: [StopModel.from_domain(stop) for stop in stops] for area, stops in sorted(grouped.items())}


@router.post("", response_model=StopModel, status_code=status.HTTP_200_OK)
async def upsert_stop(payload: StopUpsertRequest, catalog: StopCatalog = Depends(get_catalog)) -> StopModel:
    """Create or update a stop; a missing area is filled by reverse geocoding."""
    try:
        saved = await catalog.save(payload.to_domain())
    except (PersistenceError, ConfigurationError) as exc:
        raise _storage_error("save stop", exc) from exc
    return StopModel.from_domain(saved)


@router.delete("/{stop_id}", status_code=status.HTTP_200_OK)
async def delete_stop(stop_id: str, catalog: StopCatalog = Depends(get_catalog)) -> dict:
    if catalog.get(stop_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Stop {stop_id} not found")
    try:
        await catalog.delete(stop_id)
    except (PersistenceError, ConfigurationError) as exc:
        raise _storage_error("delete stop", exc) from exc
    return {"success": True, "message": f"Stop {stop_id} deleted"}
