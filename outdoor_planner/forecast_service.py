"""Fetch, trim and cache the weather forecast the recommender consumes."""
from __future__ import annotations

import datetime as dt
from dataclasses import asdict
from typing import List, Optional

from outdoor_planner.app_types import CachedForecast
from outdoor_planner.cache_store import KeyValueStore
from outdoor_planner.data_sources import ForecastDataSource, build_data_source, parse_onecall_payload
from outdoor_planner.models import CurrentWeather, HourlyForecast, WeatherForecast
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_service")

MAX_FORECAST_HOURS = 24

__all__ = [
    "cache_key",
    "forecast_from_dict",
    "forecast_to_dict",
    "get_cached_forecast",
    "get_forecast",
    "parse_onecall_payload",
    "store_forecast",
]


def _trim_hours(hours: List[HourlyForecast], current: Optional[CurrentWeather], limit: int) -> List[HourlyForecast]:
    """Order hours chronologically, drop hours before the current one, keep at most `limit`."""
    ordered = sorted((h for h in hours if h is not None), key=lambda h: h.timestamp)
    if current is not None and current.time is not None:
        hour_start = current.time.replace(minute=0, second=0, microsecond=0)
        upcoming = [h for h in ordered if h.time >= hour_start]
        # a forecast entirely in the past is still better than nothing
        ordered = upcoming or ordered
    return ordered[:limit]


def get_forecast(
    latitude: float,
    longitude: float,
    *,
    timezone: str = "auto",
    hours: int = MAX_FORECAST_HOURS,
    data_source: ForecastDataSource | None = None,
) -> WeatherForecast:
    """
    Fetch current conditions plus up to `hours` (max 24) hourly records.

    The `data_source` argument lets you inject alternate providers (different
    API, fake for tests, etc.); by default the configured provider is used.
    """
    limit = max(1, min(hours, MAX_FORECAST_HOURS))
    ds = data_source or build_data_source()

    logger.info(
        "Fetching forecast",
        extra={"latitude": latitude, "longitude": longitude, "timezone": timezone, "hours": limit},
    )

    fetch_forecast = getattr(ds, "fetch_forecast", None)
    if fetch_forecast is not None:
        fetched = fetch_forecast(latitude, longitude, timezone=timezone, hours=limit)
        current, hourly = fetched.current, fetched.hourly
    else:
        current = ds.fetch_current(latitude, longitude, timezone=timezone)
        hourly = ds.fetch_hours(latitude, longitude, timezone=timezone, hours=limit)
    hourly = _trim_hours(hourly or [], current, limit)

    tz_name = None
    if current is not None:
        tz_name = getattr(current.time.tzinfo, "key", None)
    elif hourly:
        tz_name = getattr(hourly[0].time.tzinfo, "key", None)

    logger.info("Computed forecast", extra={"hours_count": len(hourly)})
    return WeatherForecast(current=current, hourly=hourly, timezone=tz_name)


# ---------------------------------------------------------------------------
# Cache serialization
# ---------------------------------------------------------------------------

def forecast_to_dict(forecast: WeatherForecast) -> dict:
    """Serialize a forecast to a JSON-safe dict."""

    def _with_iso_time(record) -> dict | None:
        if record is None:
            return None
        d = asdict(record)
        d["time"] = record.time.isoformat()
        return d

    return {
        "timezone": forecast.timezone,
        "current": _with_iso_time(forecast.current),
        "hourly": [_with_iso_time(h) for h in forecast.hourly],
    }


def forecast_from_dict(data: dict) -> WeatherForecast:
    """Deserialize a forecast produced by forecast_to_dict()."""

    def _parse_time(d: dict) -> dict:
        return {**d, "time": dt.datetime.fromisoformat(d["time"])}

    current_raw = data.get("current")
    current = CurrentWeather(**_parse_time(current_raw)) if current_raw else None
    hourly = [HourlyForecast(**_parse_time(h)) for h in (data.get("hourly") or []) if h]
    return WeatherForecast(current=current, hourly=hourly, timezone=data.get("timezone"))


def cache_key(latitude: float, longitude: float) -> str:
    """Forecast cache key; coordinates are rounded to ~1 km so nearby requests share an entry."""
    return f"forecast:{latitude:.2f}:{longitude:.2f}"


def store_forecast(
    store: KeyValueStore,
    latitude: float,
    longitude: float,
    forecast: WeatherForecast,
    *,
    ttl_seconds: int,
    source: str | None = None,
) -> CachedForecast:
    """Write a forecast into the cache store and return the cached wrapper."""
    cached = CachedForecast(data=forecast, fetched_at=dt.datetime.now(dt.timezone.utc), source=source)
    store.set(
        cache_key(latitude, longitude),
        {
            "fetched_at": cached.fetched_at.isoformat(),
            "source": source,
            "data": forecast_to_dict(forecast),
        },
        ttl_seconds=ttl_seconds,
    )
    return cached


def get_cached_forecast(
    store: KeyValueStore,
    latitude: float,
    longitude: float,
    *,
    ttl_seconds: int,
) -> Optional[CachedForecast]:
    """Return a cached forecast younger than `ttl_seconds`, or None."""
    raw = store.get(cache_key(latitude, longitude))
    if not raw:
        return None
    try:
        fetched_at = dt.datetime.fromisoformat(raw["fetched_at"])
        cached = CachedForecast(data=forecast_from_dict(raw["data"]), fetched_at=fetched_at, source=raw.get("source"))
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("Discarding unreadable cached forecast", extra={"error": str(exc)})
        return None

    age = dt.datetime.now(dt.timezone.utc) - cached.fetched_at
    if age.total_seconds() >= ttl_seconds:
        return None
    return cached

