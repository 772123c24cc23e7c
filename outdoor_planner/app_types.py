"""Shared dataclasses and lightweight types used across modules."""

from dataclasses import dataclass
from datetime import datetime

from outdoor_planner.models import WeatherForecast


@dataclass
class CachedForecast:
    """WeatherForecast payload with the timestamp it was fetched."""
    data: WeatherForecast
    fetched_at: datetime
    source: str | None = None
