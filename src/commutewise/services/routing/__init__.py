"""Directions provider access."""

from .directions_client import DirectionsClient, profile_for_mode
from .models import PathResult, Waypoint

__all__ = ["DirectionsClient", "PathResult", "Waypoint", "profile_for_mode"]
