"""Normalized weather records shared by the data sources, forecast service and recommender."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import List, Optional


class ForecastUnavailableError(RuntimeError):
    """Raised when a provider cannot return a usable forecast."""


def _fmt(val, unit: str, fmt: str) -> str:
    """Format a value/unit pair or return an empty string."""
    if val is None:
        return ""
    try:
        return f"{fmt.format(val)}{unit}"
    except (TypeError, ValueError):
        return ""


@dataclass
class HourlyForecast:
    """One forecast hour, in metric units, localised to the forecast location."""
    time: dt.datetime  # timezone-aware
    timestamp: int  # epoch seconds
    temperature: float  # °C
    wind_speed: float  # m/s
    humidity: float  # %
    precipitation: float  # probability 0..1
    condition: Optional[str] = None
    description: Optional[str] = None

    @property
    def hour_of_day(self) -> int:
        return self.time.hour

    def to_display_strings(self) -> dict:
        """Return a display-friendly dict for API serialization."""
        return {
            "time": self.time.isoformat(),
            "hour": self.hour_of_day,
            "temperature": _fmt(self.temperature, "°C", "{:.0f}"),
            "wind_speed": _fmt(self.wind_speed, " m/s", "{:.1f}"),
            "humidity": _fmt(self.humidity, "%", "{:.0f}"),
            "precipitation": _fmt(
                None if self.precipitation is None else self.precipitation * 100, "%", "{:.0f}"
            ),
            "condition": self.condition or "",
        }


@dataclass
class CurrentWeather:
    """Current observation used for the page header."""
    time: dt.datetime  # timezone-aware
    temperature: float  # °C
    condition: str
    description: Optional[str] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None

    def to_display_strings(self) -> dict:
        """Return a display-friendly dict for API serialization."""
        return {
            "time": self.time.isoformat(),
            "temperature": _fmt(self.temperature, "°C", "{:.0f}"),
            "condition": self.condition or "",
            "description": self.description or "",
            "humidity": _fmt(self.humidity, "%", "{:.0f}"),
            "wind_speed": _fmt(self.wind_speed, " m/s", "{:.1f}"),
        }


@dataclass
class WeatherForecast:
    """Bundle of current conditions and the hourly forecast."""
    current: Optional[CurrentWeather]
    hourly: List[HourlyForecast] = field(default_factory=list)
    timezone: Optional[str] = None
