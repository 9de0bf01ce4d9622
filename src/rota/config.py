"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROTA_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Rota Route Planning API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for collection snapshots.")

    # Address-by-code provider
    address_lookup_base_url: str = Field(
        default="https://viacep.com.br",
        description="Base URL of the postal code lookup service.",
    )

    # Coordinate-by-query provider
    geocoder_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Base URL of the Nominatim-compatible search service.",
    )
    geocoder_user_agent: str = Field(
        default="RotaPlanner/1.0",
        description="Identifying client tag sent with every geocoding request.",
    )
    geocoder_language: str = Field(default="pt-BR")
    geocoder_country: str = Field(default="Brazil")
    geocoder_result_limit: int = Field(default=1, ge=1)

    # Route-leg provider
    osrm_base_url: str = Field(
        default="https://router.project-osrm.org",
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv", "cycling", "foot"] = Field(
        default="driving",
        description="OSRM profile to use when computing legs.",
    )
    osrm_geometries: Literal["geojson", "polyline"] = Field(default="geojson")

    # Reasoning/planning provider
    planner_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    planner_model: str = Field(default="gemini-2.5-flash")
    planner_api_key: Optional[str] = Field(
        default=None,
        description="API key for the reasoning service. Without it every plan uses the fallback order.",
    )
    planner_timeout_seconds: float = Field(default=60.0, gt=0.0)

    # Outbound call policy
    http_timeout_seconds: float = Field(default=20.0, gt=0.0)
    max_retries: int = Field(default=2, ge=0)
    backoff_seconds: float = Field(default=1.0, ge=0.0)
    address_lookup_interval_seconds: float = Field(default=0.0, ge=0.0)
    geocoder_interval_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Minimum delay between two geocoding calls (anonymous usage policy).",
    )
    osrm_interval_seconds: float = Field(default=0.15, ge=0.0)
    planner_interval_seconds: float = Field(default=0.0, ge=0.0)
    global_interval_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Minimum spacing between any two outbound calls regardless of provider.",
    )

    # Fleet labels
    default_vehicle_label: str = Field(default="Vehicle 1")
    pending_vehicle_label: str = Field(default="Pending")

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )
    supabase_snapshot_table: str = Field(default="stop_snapshots")

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("address_lookup_base_url", "geocoder_base_url", "osrm_base_url", "planner_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    def channel_intervals(self) -> dict[str, float]:
        """Minimum spacing per outbound channel, consumed by the request gate."""
        return {
            "address": self.address_lookup_interval_seconds,
            "geocoder": self.geocoder_interval_seconds,
            "routing": self.osrm_interval_seconds,
            "planner": self.planner_interval_seconds,
        }


settings = Settings()
