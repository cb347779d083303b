"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="CW_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "CommuteWise Route Console API"
    api_prefix: str = "/api"
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Directions provider
    directions_provider: Literal["mapbox", "osrm"] = Field(
        default="mapbox",
        description="Routing engine used for path previews and saved route geometry.",
    )
    directions_base_url: Optional[str] = Field(
        default=None,
        description=(
            "Base URL of the directions service. Defaults to the public Mapbox endpoint "
            "for the mapbox provider; required for osrm (e.g., http://localhost:5000)."
        ),
    )
    mapbox_token: Optional[str] = Field(
        default=None,
        description="Mapbox access token used for directions and reverse geocoding.",
    )
    directions_snap_radius_m: float = Field(
        default=50.0,
        gt=0.0,
        description="Distance a waypoint may be snapped onto the road network.",
    )
    directions_timeout_seconds: float = Field(default=20.0, gt=0.0)
    directions_max_retries: int = Field(default=2, ge=0)
    directions_backoff_seconds: float = Field(default=0.5, ge=0.0)

    # Reverse geocoding
    geocoding_base_url: str = Field(
        default="https://api.mapbox.com/geocoding/v5/mapbox.places",
        description="Mapbox reverse geocoding endpoint.",
    )
    geocoding_throttle_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Minimum spacing between reverse geocoding requests.",
    )

    # Route builder
    transport_modes: tuple[str, ...] = Field(
        default=("Jeepney", "Bus", "E-Jeepney", "Tricycle"),
        description="Transport kinds a route may be saved with.",
    )
    default_transport_mode: str = Field(default="Jeepney")

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("frontend_allowed_origins", "transport_modes", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            # Try comma-separated
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            # Single value
            if value.strip():
                return (value.strip(),)
        return tuple()

    @property
    def directions_configured(self) -> bool:
        """True when the selected directions provider has what it needs to be called."""
        if self.directions_provider == "mapbox":
            return bool(self.mapbox_token)
        return bool(self.directions_base_url)


settings = Settings()
