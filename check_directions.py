#!/usr/bin/env python3
"""Verify that the configured directions provider can route between two stops."""

import asyncio
import sys
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from commutewise.config import settings
from commutewise.errors import DirectionsError, DirectionsNotConfiguredError
from commutewise.services.geospatial import path_length_km
from commutewise.services.routing import DirectionsClient, Waypoint


async def run() -> int:
    print("=" * 60)
    print("Directions Provider Test")
    print("=" * 60)
    print()

    print("1. Checking configuration...")
    try:
        client = DirectionsClient()
    except DirectionsNotConfiguredError as e:
        print(f"   [ERROR] {e}")
        return 1
    print(f"   [OK] Provider: {client.provider}")
    print(f"   [OK] Base URL: {client.base_url}")
    print(f"   [OK] Snap radius: {settings.directions_snap_radius_m:g} m")
    print()

    print("2. Requesting a path (Cubao → Quiapo)...")
    waypoints = [
        Waypoint(id="cubao", latitude=14.6190, longitude=121.0530),
        Waypoint(id="quiapo", latitude=14.5990, longitude=120.9840),
    ]
    try:
        result = await client.route(waypoints)
    except DirectionsError as e:
        print(f"   [ERROR] {e}")
        return 1
    if result is None:
        print("   [ERROR] Provider found no path between the test stops")
        return 1

    print(f"   [OK] Distance: {result.distance / 1000:.2f} km")
    print(f"   [OK] Duration: {result.duration / 60:.1f} min")
    print(f"   [OK] Geometry points: {len(result.geometry.coordinates)}")
    print(f"   [OK] Length along geometry: {path_length_km(result.geometry):.2f} km")
    print()
    print("[OK] Directions provider is working")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(run()))
