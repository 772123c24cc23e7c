"""Interfaces and helpers for forecast data sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from outdoor_planner.models import CurrentWeather, HourlyForecast, WeatherForecast


class ForecastDataSource(Protocol):
    """Interface for anything that can provide current and hourly weather."""

    def fetch_current(
        self,
        latitude: float,
        longitude: float,
        *,
        timezone: str = "auto",
    ) -> CurrentWeather:
        """Return the current weather observation."""
        ...

    def fetch_hours(
        self,
        latitude: float,
        longitude: float,
        *,
        timezone: str = "auto",
        hours: int = 24,
    ) -> List[HourlyForecast]:
        """Return hourly forecast records in chronological order."""
        ...


@dataclass
class CallableForecastDataSource(ForecastDataSource):
    """Wrap provider callables so providers (or test fakes) can be swapped in.

    `forecast`, when set, returns current conditions and hours from one
    provider request; otherwise the two separate callables are combined.
    """

    current: Callable[..., CurrentWeather]
    hours: Callable[..., List[HourlyForecast]]
    name: str = "callable"
    forecast: Optional[Callable[..., WeatherForecast]] = None

    def fetch_current(self, *args, **kwargs) -> CurrentWeather:
        """Delegate to the configured current-weather callable."""
        return self.current(*args, **kwargs)

    def fetch_hours(self, *args, **kwargs) -> List[HourlyForecast]:
        """Delegate to the configured hourly-forecast callable."""
        return self.hours(*args, **kwargs)

    def fetch_forecast(
        self,
        latitude: float,
        longitude: float,
        *,
        timezone: str = "auto",
        hours: int = 24,
    ) -> WeatherForecast:
        """Return current conditions plus hourly records."""
        if self.forecast is not None:
            return self.forecast(latitude, longitude, timezone=timezone, hours=hours)
        return WeatherForecast(
            current=self.fetch_current(latitude, longitude, timezone=timezone),
            hourly=self.fetch_hours(latitude, longitude, timezone=timezone, hours=hours),
        )
