"""Health endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, status

from ...data.stops_repository import STOPS_TABLE
from ...db.supabase import NOT_CONFIGURED_MESSAGE, execute

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/directions", status_code=status.HTTP_200_OK)
async def health_directions(request: Request) -> dict:
    """Check that the directions provider answers a short probe route."""
    directions = request.app.state.directions
    if directions is None:
        return {
            "service": "directions",
            "configured": False,
            "healthy": False,
            "message": "Directions provider not configured. Set CW_MAPBOX_TOKEN or CW_DIRECTIONS_BASE_URL.",
        }
    healthy = await directions.check_health()
    return {
        "service": "directions",
        "configured": True,
        "provider": directions.provider,
        "healthy": healthy,
    }


@router.get("/health/database", status_code=status.HTTP_200_OK)
async def check_database(request: Request) -> dict:
    """Check database connection and stop table access."""
    supabase = request.app.state.supabase
    if supabase is None:
        return {
            "configured": False,
            "message": NOT_CONFIGURED_MESSAGE,
        }

    try:
        await execute(supabase.table(STOPS_TABLE).select("id").limit(1))
    except Exception as exc:
        logging.warning(f"Database health check failed: {exc}")
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }

    return {
        "configured": True,
        "connected": True,
        "stops_loaded": len(request.app.state.catalog.stops),
        "routes_loaded": len(request.app.state.network.routes),
        "message": "Database connected.",
    }
