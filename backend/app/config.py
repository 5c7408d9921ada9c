"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./stpaul_crime.sqlite3"

    # Incident queries
    default_incident_limit: int = 1000

    # Geocoding (Nominatim)
    geocoder_base_url: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "stpaul-crime-browser/0.1"
    geocoder_timeout: float = 10.0
    geocoder_max_retries: int = 2
    geocode_cache_size: int = 256
    geocoder_city_suffix: str = "St. Paul, MN"

    # Map defaults (St. Paul city limits)
    map_min_lat: float = 44.883658
    map_max_lat: float = 44.992041
    map_min_lng: float = -93.217977
    map_max_lng: float = -92.993787
    recenter_span_degrees: float = 0.01

    # API client (out-of-process consumers)
    api_base_url: str = "http://localhost:8000/api/v1"
    api_timeout: float = 30.0
    api_max_retries: int = 3

    # API settings
    api_v1_prefix: str = "/api/v1"
    cors_origins: list[str] = ["*"]  # Restrict in production
    rate_limit_per_minute: int = 60
    rate_limit_enabled: bool = True

    # Environment
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
