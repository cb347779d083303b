"""Supabase client for the route console backend."""

import asyncio
import logging
from functools import lru_cache
from typing import Any

from supabase import create_client, Client
from ..config import settings
from ..errors import PersistenceNotConfiguredError

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = (
    "Supabase not configured. Set CW_SUPABASE_URL and CW_SUPABASE_KEY environment variables."
)


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase credentials not configured (missing URL or key)")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        return None


def require_client(client: Client | None) -> Client:
    if client is None:
        raise PersistenceNotConfiguredError(NOT_CONFIGURED_MESSAGE)
    return client


async def execute(query: Any) -> Any:
    """Run a PostgREST query builder without blocking the event loop.

    The client is synchronous; the call runs in a worker thread and the
    caller resumes on the loop with the response.
    """
    return await asyncio.to_thread(query.execute)


# Tables used by the console:
#
#   stops        id, name, type ('terminal' | 'stop'), latitude, longitude,
#                vehicle_types text[], area
#   routes       id, created_at, name, vehicle_type, origin_id, destination_id,
#                geometry (GeoJSON LineString), distance_m, duration_sec,
#                fare_amount, discounted_fare_amount, is_strict
#   route_stops  id, route_id (ON DELETE CASCADE), stop_id, sequence,
#                fare_amount, discounted_fare_amount
