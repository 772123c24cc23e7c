"""Helpers for fetching current and hourly weather from the OpenWeatherMap One Call API."""
from __future__ import annotations

import datetime as dt
import math
from typing import Any, List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import requests

from outdoor_planner.config import settings
from outdoor_planner.data_sources.http import session
from outdoor_planner.models import CurrentWeather, ForecastUnavailableError, HourlyForecast, WeatherForecast
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="openweather_client")

DEFAULT_TIMEZONE = "UTC"


def _zone(tz_name: str | None) -> ZoneInfo:
    """Return a ZoneInfo for tz_name, falling back to UTC on unknown names."""
    if not tz_name or tz_name == "auto":
        return ZoneInfo(DEFAULT_TIMEZONE)
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Invalid timezone; falling back to UTC", extra={"tz_name": tz_name})
        return ZoneInfo(DEFAULT_TIMEZONE)


def _number(value: Any) -> float:
    """Coerce a provider value to float; anything unusable becomes NaN."""
    if value is None or isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _headline(entry: Mapping) -> tuple[str, Optional[str]]:
    """Return (main, description) from an OpenWeatherMap `weather` list."""
    weather = entry.get("weather") or []
    if not weather:
        return "Unknown", None
    first = weather[0] or {}
    return first.get("main") or "Unknown", first.get("description")


def _parse_hour(entry: Mapping, tzinfo: ZoneInfo) -> HourlyForecast:
    """Map one `hourly` entry into an HourlyForecast."""
    ts = int(entry["dt"])
    # some feeds pre-compute `precipitation`; One Call itself only sends `pop`
    precip = entry["precipitation"] if "precipitation" in entry else entry.get("pop")
    main, description = _headline(entry)
    return HourlyForecast(
        time=dt.datetime.fromtimestamp(ts, tz=tzinfo),
        timestamp=ts,
        temperature=_number(entry.get("temp")),
        wind_speed=_number(entry.get("wind_speed")),
        humidity=_number(entry.get("humidity")),
        precipitation=_number(precip),
        condition=main,
        description=description,
    )


def parse_onecall_payload(payload: Mapping, *, timezone: str | None = None) -> WeatherForecast:
    """
    Build a WeatherForecast from a One Call style payload.

    Accepts `current: {dt, temp, weather: [{main}], ...}` and
    `hourly: [{dt, temp, wind_speed, humidity, precipitation | pop}, ...]`.
    Hours are localised with `timezone` when given, otherwise with the
    payload's own `timezone` name, otherwise UTC; they are returned in
    chronological order. Hourly entries without a timestamp are dropped.
    """
    if not isinstance(payload, Mapping):
        raise ForecastUnavailableError("Forecast payload is not a JSON object")
    if "current" not in payload or "hourly" not in payload:
        raise ForecastUnavailableError("Forecast payload is missing 'current' or 'hourly'")

    tz_name = timezone if timezone and timezone != "auto" else payload.get("timezone")
    tzinfo = _zone(tz_name)

    hourly: List[HourlyForecast] = []
    for entry in payload.get("hourly") or []:
        if not entry or entry.get("dt") is None:
            logger.debug("Skipping hourly entry without timestamp", extra={"entry": entry})
            continue
        try:
            hourly.append(_parse_hour(entry, tzinfo))
        except (TypeError, ValueError, OverflowError) as exc:
            logger.warning("Skipping malformed hourly entry", extra={"error": str(exc)})
    hourly.sort(key=lambda h: h.timestamp)

    current_raw = payload.get("current") or {}
    current_ts = current_raw.get("dt")
    if current_ts is not None:
        try:
            current_time = dt.datetime.fromtimestamp(int(current_ts), tz=tzinfo)
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise ForecastUnavailableError("Forecast payload has an invalid 'current.dt'") from exc
    elif hourly:
        current_time = hourly[0].time
    else:
        current_time = dt.datetime.now(tzinfo)
    main, description = _headline(current_raw)
    current = CurrentWeather(
        time=current_time,
        temperature=_number(current_raw.get("temp")),
        condition=main,
        description=description,
        humidity=_number(current_raw.get("humidity")) if "humidity" in current_raw else None,
        wind_speed=_number(current_raw.get("wind_speed")) if "wind_speed" in current_raw else None,
    )

    return WeatherForecast(current=current, hourly=hourly, timezone=tzinfo.key)


def fetch_onecall(latitude: float,
                  longitude: float,
                  *,
                  api_key: str | None = None,
                  url: str | None = None,
                  ) -> dict:
    """Fetch the raw One Call payload (current + hourly, metric units)."""
    key = api_key or settings.openweather_api_key
    if not key:
        raise ForecastUnavailableError("OpenWeatherMap API key is not configured (PLANNER_OPENWEATHER_API_KEY)")

    endpoint = url or settings.openweather_url
    params = {
        "lat": latitude,
        "lon": longitude,
        "exclude": "minutely,daily,alerts",
        "units": "metric",
        "appid": key,
    }

    try:
        resp = session.get(endpoint, params=params, timeout=settings.http_timeout_seconds)
        resp.raise_for_status()
        data = resp.json()
    except requests.RequestException as exc:
        logger.error(
            "OpenWeatherMap request failed",
            extra={"url": mask_url(f"{endpoint}?appid={key}"), "error": str(exc)},
        )
        raise ForecastUnavailableError("Failed to fetch weather data") from exc
    except ValueError as exc:
        raise ForecastUnavailableError("OpenWeatherMap returned invalid JSON") from exc

    logger.debug("Fetched One Call payload", extra={"latitude": latitude, "longitude": longitude})
    return data


def fetch_current(latitude: float,
                  longitude: float,
                  *,
                  timezone: str = "auto",
                  ) -> CurrentWeather:
    """Fetch the current observation for the given coordinates."""
    forecast = parse_onecall_payload(fetch_onecall(latitude, longitude), timezone=timezone)
    return forecast.current


def fetch_hours(latitude: float,
                longitude: float,
                *,
                timezone: str = "auto",
                hours: int = 24,
                ) -> List[HourlyForecast]:
    """Fetch up to `hours` hourly forecast records for the given coordinates."""
    forecast = parse_onecall_payload(fetch_onecall(latitude, longitude), timezone=timezone)
    return forecast.hourly[:hours]


def fetch_forecast(latitude: float,
                   longitude: float,
                   *,
                   timezone: str = "auto",
                   hours: int = 24,
                   ) -> WeatherForecast:
    """Fetch current conditions and up to `hours` hourly records with a single One Call request."""
    forecast = parse_onecall_payload(fetch_onecall(latitude, longitude), timezone=timezone)
    forecast.hourly = forecast.hourly[:hours]
    return forecast
