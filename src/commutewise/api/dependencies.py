"""Request-scoped access to the services wired up in ``create_app``."""

from __future__ import annotations

from fastapi import Request

from ..data.stops_repository import StopCatalog
from ..services.builder.save import RouteSavePipeline
from ..services.builder.store import RouteBuilderStore
from ..services.network.store import RouteNetwork


def get_builder(request: Request) -> RouteBuilderStore:
    return request.app.state.builder


def get_catalog(request: Request) -> StopCatalog:
    return request.app.state.catalog


def get_save_pipeline(request: Request) -> RouteSavePipeline:
    return request.app.state.save_pipeline


def get_network(request: Request) -> RouteNetwork:
    return request.app.state.network
