"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import builder, health, routes, stops
from .config import Settings, settings as default_settings
from .data.stops_repository import StopCatalog, StopRepository
from .db.supabase import get_supabase_client
from .errors import ConfigurationError, DirectionsNotConfiguredError, PersistenceError
from .persistence.database import RouteRepository, RouteStopRepository
from .services.builder.preview import RoutePreviewEngine
from .services.builder.save import RouteSavePipeline
from .services.builder.store import RouteBuilderStore
from .services.geocoding import GeocodingClient
from .services.network.store import RouteNetwork
from .services.routing.directions_client import DirectionsClient

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def build_directions_client(config: Settings) -> DirectionsClient | None:
    """Directions client for the configured provider, or None when it lacks credentials."""
    try:
        return DirectionsClient(
            provider=config.directions_provider,
            base_url=config.directions_base_url,
            access_token=config.mapbox_token,
            timeout=config.directions_timeout_seconds,
            max_retries=config.directions_max_retries,
            backoff_seconds=config.directions_backoff_seconds,
        )
    except DirectionsNotConfiguredError as e:
        logger.warning(f"Route previews and saves are disabled: {e}")
        return None


def build_geocoder(config: Settings) -> GeocodingClient | None:
    if not config.mapbox_token:
        logger.info("Mapbox token not configured; stop areas will not be geocoded")
        return None
    return GeocodingClient(
        access_token=config.mapbox_token,
        base_url=config.geocoding_base_url,
        throttle_seconds=config.geocoding_throttle_seconds,
    )


def create_app(
    settings: Settings | None = None,
    *,
    supabase_client: Any = _UNSET,
    directions: DirectionsClient | None = _UNSET,
    geocoder: GeocodingClient | None = _UNSET,
) -> FastAPI:
    """Wire the stores and services together and expose them over HTTP.

    Collaborators default to ones built from ``settings``; pass them
    explicitly (``None`` included) to run without the real services.
    """
    config = settings or default_settings
    client = get_supabase_client() if supabase_client is _UNSET else supabase_client
    directions_client = build_directions_client(config) if directions is _UNSET else directions
    geocoding_client = build_geocoder(config) if geocoder is _UNSET else geocoder

    route_repo = RouteRepository(client)
    route_stop_repo = RouteStopRepository(client)
    catalog = StopCatalog(StopRepository(client), geocoder=geocoding_client)
    builder_store = RouteBuilderStore(default_transport_mode=config.default_transport_mode)
    network = RouteNetwork(route_repo, route_stop_repo)
    preview = RoutePreviewEngine(
        builder_store,
        catalog,
        directions_client,
        snap_radius_m=config.directions_snap_radius_m,
    )
    save_pipeline = RouteSavePipeline(
        builder_store,
        catalog,
        directions_client,
        route_repo,
        route_stop_repo,
        network=network,
        transport_modes=config.transport_modes,
        snap_radius_m=config.directions_snap_radius_m,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        preview.start()
        try:
            await catalog.reload()
        except (PersistenceError, ConfigurationError) as e:
            logger.warning(f"Stops not loaded at startup: {e}")
        await network.reload()
        logger.info(f"Loaded {len(catalog.stops)} stops and {len(network.routes)} routes")
        yield
        preview.stop()
        await preview.wait_idle()

    app = FastAPI(
        title=config.app_name,
        root_path="",
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.supabase = client
    app.state.directions = directions_client
    app.state.catalog = catalog
    app.state.builder = builder_store
    app.state.network = network
    app.state.preview = preview
    app.state.save_pipeline = save_pipeline

    if config.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(config.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Root endpoint for diagnostics
    @app.get("/")
    async def root():
        return {
            "service": config.app_name,
            "status": "running",
            "api_prefix": config.api_prefix,
            "health": f"{config.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=config.api_prefix)
    app.include_router(builder.router, prefix=config.api_prefix)
    app.include_router(routes.router, prefix=config.api_prefix)
    app.include_router(stops.router, prefix=config.api_prefix)
    return app


app = create_app()
