#!/usr/bin/env python3
"""Helper script to check the .env file for Supabase and Mapbox configuration."""

from pathlib import Path
import os
import sys

SECRET_KEYS = ("CW_SUPABASE_KEY", "CW_MAPBOX_TOKEN")

TEMPLATE = """# Supabase Configuration (Required for stops and routes)
# Get these from: https://supabase.com/dashboard → Your Project → Settings → API
CW_SUPABASE_URL=https://your-project-id.supabase.co
CW_SUPABASE_KEY=your-service-role-key-here

# Directions and reverse geocoding
CW_DIRECTIONS_PROVIDER=mapbox
CW_MAPBOX_TOKEN=pk.your-mapbox-token
# For a self-hosted OSRM instance instead:
# CW_DIRECTIONS_PROVIDER=osrm
# CW_DIRECTIONS_BASE_URL=http://localhost:5000

# API Configuration
CW_API_PREFIX=/api
# CW_FRONTEND_ALLOWED_ORIGINS - JSON array or comma-separated
# CW_TRANSPORT_MODES=Jeepney,Bus,E-Jeepney,Tricycle
"""


def _mask(line: str) -> str:
    name, _, value = line.partition("=")
    value = value.strip()
    if name.strip() in SECRET_KEYS and len(value) > 20:
        return f"{name}={value[:12]}...{value[-6:]}"
    return line


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Route Console Environment Checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        print(f"❌ .env file NOT found at: {env_file}")
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"✅ Created template .env file at: {env_file}")
        print("⚠️  Please edit .env and add your Supabase and Mapbox credentials!")
        return

    print(f"✅ Found .env file at: {env_file}")
    print("-" * 60)
    for line in env_file.read_text(encoding="utf-8").splitlines():
        print(_mask(line))
    print("-" * 60)
    print()

    for name in ("CW_SUPABASE_URL", "CW_SUPABASE_KEY", "CW_MAPBOX_TOKEN", "CW_DIRECTIONS_BASE_URL"):
        status = "set in environment" if os.getenv(name) else "not in environment (may come from .env)"
        print(f"   {name}: {status}")
    print()

    sys.path.insert(0, str(project_root / "src"))
    from commutewise.config import settings

    supabase_ok = bool(settings.supabase_url and settings.supabase_key)
    print(f"{'✅' if supabase_ok else '❌'} Supabase configured: {supabase_ok}")
    print(
        f"{'✅' if settings.directions_configured else '❌'} Directions provider "
        f"'{settings.directions_provider}' configured: {settings.directions_configured}"
    )
    print(f"{'✅' if settings.mapbox_token else '⚠️ '} Reverse geocoding available: {bool(settings.mapbox_token)}")
    print()

    if not supabase_ok or not settings.directions_configured:
        print("Troubleshooting:")
        print("1. Make sure .env file exists in project root")
        print("2. Make sure variables start with CW_ prefix")
        print("3. Make sure there are no spaces around = sign")
        print("4. Restart backend after editing .env")


if __name__ == "__main__":
    main()
