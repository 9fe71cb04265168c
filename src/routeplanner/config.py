"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROUTEPLANNER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Delivery Route Planner API"
    api_prefix: str = "/api"
    user_agent: str = Field(
        default="DeliveryRoutePlanner/1.0",
        description="User-Agent sent to public OpenStreetMap services (Nominatim and Overpass require one).",
    )
    max_stops_per_plan: int = Field(default=99, ge=2)

    osrm_base_url: str = Field(
        default="https://router.project-osrm.org",
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile used for trip and route requests.",
    )
    osrm_timeout_seconds: float = Field(default=30.0, gt=0.0)
    osrm_max_retries: int = Field(default=0, ge=0)
    osrm_backoff_seconds: float = Field(default=1.0, ge=0.0)
    osrm_unpaved_exclude: Optional[str] = Field(
        default=None,
        description=(
            "Comma-separated OSRM exclude classes sent when unpaved roads should be avoided on one-way trips "
            "(e.g., 'ferry,unpaved'). Only set this when the OSRM profile defines those classes."
        ),
    )

    ors_base_url: str = Field(default="https://api.openrouteservice.org")
    ors_profile: str = Field(default="driving-car")
    ors_api_key: Optional[str] = Field(
        default=None,
        description="OpenRouteService API key. Without it the path-fidelity provider is unavailable.",
    )
    ors_timeout_seconds: float = Field(default=30.0, gt=0.0)

    overpass_url: str = Field(default="https://overpass-api.de/api/interpreter")
    overpass_timeout_seconds: float = Field(default=10.0, gt=0.0)

    nominatim_url: str = Field(default="https://nominatim.openstreetmap.org")
    nominatim_timeout_seconds: float = Field(default=10.0, gt=0.0)
    geocode_max_parallel: int = Field(
        default=2,
        ge=1,
        description="Upper bound on concurrent reverse-geocoding requests while labeling tolls.",
    )

    closest_first_ratio: float = Field(default=1.2, gt=1.0)
    toll_merge_radius_m: float = Field(default=200.0, ge=0.0)
    toll_search_margin_deg: float = Field(default=0.05, ge=0.0)
    toll_on_route_tolerance_deg: float = Field(default=0.001, gt=0.0)
    ghost_points_per_leg: int = Field(default=2, ge=0)
    stop_match_tolerance_deg: float = Field(default=0.005, gt=0.0)
    google_maps_max_waypoints: int = Field(default=9, ge=1)
    google_maps_max_url_length: int = Field(default=2048, ge=256)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("frontend_allowed_origins", mode="before")
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
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("osrm_base_url", "ors_base_url", "nominatim_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


settings = Settings()
