"""Application configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the outdoor activity planner."""
    model_config = SettingsConfigDict(env_prefix="PLANNER_", env_file=".env", extra="ignore")

    log_level: str = "INFO"

    # forecast provider
    forecast_source: str = "openweather"  # options: openweather, open_meteo
    openweather_api_key: str | None = None
    openweather_url: str = "https://api.openweathermap.org/data/3.0/onecall"
    open_meteo_url: str = "https://api.open-meteo.com/v1/forecast"
    forecast_hours: int = 24
    http_timeout_seconds: float = 10.0
    http_cache_seconds: int = 600
    http_retries: int = 3

    # cache store for locations and forecasts
    cache_redis_url: str | None = None
    cache_prefix: str = "planner:"
    location_ttl_seconds: int = 3600
    conditions_ttl_seconds: int = 900

    # fallback location when the browser shares nothing and nothing is saved
    default_latitude: float = 40.7128
    default_longitude: float = -74.0060
    default_location_name: str = "New York"

    # optional API key guard
    api_key: str | None = None
    api_key_redis_url: str | None = None
    api_key_redis_set: str = "api_keys"

    @field_validator("openweather_url", "open_meteo_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("forecast_hours", mode="after")
    @classmethod
    def clamp_forecast_hours(cls, v: int) -> int:
        """The recommender scans at most one day of hourly records."""
        if v < 1:
            raise ValueError("forecast_hours must be at least 1")
        return min(v, 24)


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
