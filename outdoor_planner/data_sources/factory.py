"""Factory helpers for choosing a forecast data source at startup."""

from __future__ import annotations

from outdoor_planner import config
from outdoor_planner.data_sources import open_meteo_client, openweather_client
from outdoor_planner.data_sources.base import CallableForecastDataSource, ForecastDataSource
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_SOURCE_NAME = "openweather"


def build_data_source(settings: config.Settings | None = None) -> ForecastDataSource:
    """Instantiate the configured forecast data source."""
    settings = settings or config.settings
    source = (settings.forecast_source or DEFAULT_SOURCE_NAME).lower()

    if source == "openweather":
        if not getattr(settings, "openweather_api_key", None):
            logger.warning("OpenWeatherMap selected but PLANNER_OPENWEATHER_API_KEY is not set; requests will fail")
        logger.info("Using OpenWeatherMap data source")
        return CallableForecastDataSource(
            current=openweather_client.fetch_current,
            hours=openweather_client.fetch_hours,
            name="openweather",
            forecast=openweather_client.fetch_forecast,
        )

    if source == "open_meteo":
        logger.info("Using Open-Meteo data source")
        return CallableForecastDataSource(
            current=open_meteo_client.fetch_current,
            hours=open_meteo_client.fetch_hours,
            name="open_meteo",
        )

    raise ValueError(f"Unknown forecast source '{source}'")
