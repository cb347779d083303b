"""Route group exports."""

from . import builder, health, routes, stops

__all__ = ["builder", "health", "routes", "stops"]
