"""Helpers for fetching current and hourly weather from the Open-Meteo forecast API."""
from __future__ import annotations

import datetime as dt
import math
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import requests

from outdoor_planner.config import settings
from outdoor_planner.data_sources.http import session
from outdoor_planner.models import CurrentWeather, ForecastUnavailableError, HourlyForecast
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="open_meteo_client")

EXPECTED_UNITS = {
    "temperature_2m": "°C",
    "relative_humidity_2m": "%",
    "precipitation_probability": "%",
    "wind_speed_10m": "m/s",
}

# Acceptable alternative spellings that should not trigger warnings.
ALLOWED_UNIT_SYNONYMS = {
    "temperature_2m": {"°C"},
    "relative_humidity_2m": {"%", "percent"},
    "precipitation_probability": {"%", "percent"},
    "wind_speed_10m": {"m/s", "ms"},
}

# WMO weather interpretation codes mapped onto OpenWeatherMap-style headlines
WMO_CONDITIONS = {
    0: "Clear",
    1: "Clouds",
    2: "Clouds",
    3: "Clouds",
    45: "Fog",
    48: "Fog",
    51: "Drizzle",
    53: "Drizzle",
    55: "Drizzle",
    56: "Drizzle",
    57: "Drizzle",
    61: "Rain",
    63: "Rain",
    65: "Rain",
    66: "Rain",
    67: "Rain",
    71: "Snow",
    73: "Snow",
    75: "Snow",
    77: "Snow",
    80: "Rain",
    81: "Rain",
    82: "Rain",
    85: "Snow",
    86: "Snow",
    95: "Thunderstorm",
    96: "Thunderstorm",
    99: "Thunderstorm",
}


def _condition(code) -> str:
    """Translate a WMO weather code into a headline condition."""
    if code is None:
        return "Unknown"
    try:
        return WMO_CONDITIONS.get(int(code), "Unknown")
    except (TypeError, ValueError):
        return "Unknown"


def _number(value) -> float:
    if value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _probability(percent) -> float:
    """Open-Meteo reports precipitation probability in percent; the recommender uses 0..1."""
    return _number(percent) / 100.0


def _iso_to_dt_with_tz(s: str, tz_name: str) -> dt.datetime:
    """Interpret an Open-Meteo local time string as being in tz_name."""
    naive = dt.datetime.fromisoformat(s)
    try:
        tzinfo = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Invalid timezone from Open-Meteo; using UTC", extra={"tz_name": tz_name})
        tzinfo = ZoneInfo("UTC")
    return naive.replace(tzinfo=tzinfo)


def _warn_on_unexpected_units(units: dict, *, context: str):
    """Log a warning if Open-Meteo returns units we did not request."""
    if not units:
        return
    for field, expected in EXPECTED_UNITS.items():
        actual = units.get(field)
        if actual and actual != expected and actual not in ALLOWED_UNIT_SYNONYMS.get(field, set()):
            logger.warning(
                "Unexpected Open-Meteo unit",
                extra={"context": context, "field": field, "unit": actual, "expected": expected},
            )


def _get(params: dict) -> dict:
    """Run a forecast request and return the decoded JSON body."""
    try:
        resp = session.get(settings.open_meteo_url, params=params, timeout=settings.http_timeout_seconds)
        resp.raise_for_status()
        return resp.json()
    except requests.RequestException as exc:
        logger.error("Open-Meteo request failed", extra={"error": str(exc)})
        raise ForecastUnavailableError("Failed to fetch weather data") from exc
    except ValueError as exc:
        raise ForecastUnavailableError("Open-Meteo returned invalid JSON") from exc


def fetch_current(latitude: float,
                  longitude: float,
                  *,
                  timezone: str = "auto",
                  ) -> CurrentWeather:
    """Fetch the latest available weather observation for the given coordinates."""
    current_vars = ["temperature_2m", "relative_humidity_2m", "wind_speed_10m", "weather_code"]

    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": ",".join(current_vars),
        "timezone": timezone,
        "temperature_unit": "celsius",
        "wind_speed_unit": "ms",
    }
    data = _get(params)

    try:
        current = data["current"]
        tz_name = data.get("timezone") or "UTC"
        _warn_on_unexpected_units(data.get("current_units") or {}, context="weather_current")
        return CurrentWeather(
            time=_iso_to_dt_with_tz(current["time"], tz_name),
            temperature=_number(current.get("temperature_2m")),
            condition=_condition(current.get("weather_code")),
            humidity=_number(current.get("relative_humidity_2m")),
            wind_speed=_number(current.get("wind_speed_10m")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ForecastUnavailableError("Open-Meteo current payload is malformed") from exc


def fetch_hours(
    latitude: float,
    longitude: float,
    *,
    timezone: str = "auto",
    hours: int = 24,
) -> List[HourlyForecast]:
    """Fetch up to `hours` hourly forecast records starting at the current hour."""
    hourly_vars = [
        "temperature_2m",
        "relative_humidity_2m",
        "precipitation_probability",
        "wind_speed_10m",
        "weather_code",
    ]

    params = {
        "latitude": latitude,
        "longitude": longitude,
        "hourly": ",".join(hourly_vars),
        "forecast_hours": hours,
        "timezone": timezone,
        "temperature_unit": "celsius",
        "wind_speed_unit": "ms",
    }
    data = _get(params)

    try:
        hourly = data["hourly"]
        tz_name = data.get("timezone") or "UTC"
        _warn_on_unexpected_units(data.get("hourly_units") or {}, context="weather_hourly")
        times = hourly["time"]
        temp = hourly.get("temperature_2m", [None] * len(times))
        humidity = hourly.get("relative_humidity_2m", [None] * len(times))
        precip_prob = hourly.get("precipitation_probability", [None] * len(times))
        wind_speed = hourly.get("wind_speed_10m", [None] * len(times))
        codes = hourly.get("weather_code", [None] * len(times))

        out: List[HourlyForecast] = []
        for i, t in enumerate(times):
            local = _iso_to_dt_with_tz(t, tz_name)
            out.append(
                HourlyForecast(
                    time=local,
                    timestamp=int(local.timestamp()),
                    temperature=_number(temp[i]),
                    wind_speed=_number(wind_speed[i]),
                    humidity=_number(humidity[i]),
                    precipitation=_probability(precip_prob[i]),
                    condition=_condition(codes[i]),
                )
            )
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise ForecastUnavailableError("Open-Meteo hourly payload is malformed") from exc

    return out[:hours]
