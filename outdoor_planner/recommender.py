"""Deterministic activity recommendation logic.

This module scores forecast hours against activity profiles, picks the best
preferred hour for each activity and buckets the result into a quality tier.
Everything here is pure: no I/O, no shared state, same input -> same output.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone, tzinfo
from itertools import islice
from typing import Any, Iterable, Mapping, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from outdoor_planner.data_sources.openweather_client import parse_onecall_payload
from outdoor_planner.domain import (
    DEFAULT_ACTIVITY_PROFILES,
    TIER_THRESHOLDS,
    ActivityProfile,
    ConditionSuggestion,
    Location,
    QualityTier,
    Recommendation,
    RecommendationContext,
    RecommendationPayload,
)
from outdoor_planner.models import WeatherForecast

MAX_SCAN_HOURS = 24

TEMPERATURE_WEIGHT = 20.0
WIND_WEIGHT = 15.0
HUMIDITY_WEIGHT = 15.0
PRECIPITATION_PENALTY = 30.0


def _get_field(hour: Any, key: str, default=None):
    """Support attribute, dict, or Mapping access for hour records."""
    if hour is None:
        return default
    if isinstance(hour, Mapping):
        return hour.get(key, default)
    return getattr(hour, key, default)


def _first_field(hour: Any, *keys: str):
    """Return the first present (non-None) field among `keys`."""
    for key in keys:
        value = _get_field(hour, key)
        if value is not None:
            return value
    return None


def _as_number(value: Any) -> float:
    """Coerce to a finite float; None, bools, strings, NaN and infinities become NaN."""
    if value is None or isinstance(value, bool):
        return math.nan
    try:
        number = float(value)
    except (TypeError, ValueError):
        return math.nan
    return number if math.isfinite(number) else math.nan


def _round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def _clamp_score(score: int) -> int:
    """Clamp a score to the 0-100 range."""
    return max(0, min(100, score))


def _resolve_zone(tz: str | tzinfo | None) -> tzinfo:
    """Turn a zone name or tzinfo into a tzinfo; unknown or missing names mean UTC."""
    if isinstance(tz, tzinfo):
        return tz
    if not tz or tz == "auto":
        return timezone.utc
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def local_time(hour: Any, tz: str | tzinfo | None = None) -> datetime | None:
    """
    Datetime of a forecast record in the forecast's local zone.

    A `time` datetime is used as given; a bare `timestamp`/`dt` epoch is
    converted with `tz` (UTC when not supplied).
    """
    time_val = _get_field(hour, "time")
    if isinstance(time_val, datetime):
        return time_val
    ts = _first_field(hour, "timestamp", "dt")
    if isinstance(ts, (int, float)) and not isinstance(ts, bool):
        try:
            return datetime.fromtimestamp(ts, tz=_resolve_zone(tz))
        except (OverflowError, OSError, ValueError):
            return None
    return None


def hour_of_day(hour: Any, tz: str | tzinfo | None = None) -> int | None:
    """Local hour of day for a forecast record, or None if it cannot be determined."""
    explicit = _get_field(hour, "hour_of_day")
    if isinstance(explicit, int) and not isinstance(explicit, bool):
        return explicit
    when = local_time(hour, tz)
    return when.hour if when is not None else None


def score_hour(hour: Any, profile: ActivityProfile) -> float:
    """
    Score one forecast hour for an activity on a 0-100 scale.

    Penalties are subtracted from 100:
    - temperature: distance from the middle of the range, relative to max_temp, x20
    - wind: wind speed relative to max_wind, x15
    - humidity: distance from the middle of the range, relative to max_humidity, x15
    - precipitation: flat 30 when above max_precipitation

    Malformed inputs never raise; the result is NaN, which callers treat as
    "not recommended".
    """
    temp = _as_number(_first_field(hour, "temperature", "temp"))
    wind = _as_number(_get_field(hour, "wind_speed"))
    humidity = _as_number(_get_field(hour, "humidity"))
    precip = _as_number(_first_field(hour, "precipitation", "pop"))

    if any(math.isnan(v) for v in (temp, wind, humidity, precip)):
        return math.nan

    temp_penalty = abs(temp - profile.temp_mid) / profile.max_temp * TEMPERATURE_WEIGHT
    wind_penalty = wind / profile.max_wind * WIND_WEIGHT
    humidity_penalty = abs(humidity - profile.humidity_mid) / profile.max_humidity * HUMIDITY_WEIGHT
    precip_penalty = PRECIPITATION_PENALTY if precip > profile.max_precipitation else 0.0

    total = temp_penalty + wind_penalty + humidity_penalty + precip_penalty
    return _clamp_score(_round_half_up(100.0 - total))


def find_best_hour(
    hours: Iterable[Any],
    profile: ActivityProfile,
    *,
    tz: str | tzinfo | None = None,
) -> tuple[Any | None, int]:
    """
    Return (best_hour, score) among hours whose local hour is in preferred_hours.

    - Epoch-only records are localised with `tz` before the hour check.
    - At most MAX_SCAN_HOURS records are considered, in the given order.
    - Ties keep the earliest hour (strict greater-than comparison).
    - Hours with a NaN score are never chosen.
    - No eligible hour -> (None, 0).
    """
    best_hour = None
    best_score = -math.inf

    for hour in islice(hours, MAX_SCAN_HOURS):
        if hour is None:
            continue
        if hour_of_day(hour, tz) not in profile.preferred_hours:
            continue
        score = score_hour(hour, profile)
        if score > best_score:
            best_score = score
            best_hour = hour

    if best_hour is None:
        return None, 0
    return best_hour, int(best_score)


def quality_tier(score: float) -> QualityTier:
    """Map a 0-100 score to its quality tier; NaN maps to poor."""
    for minimum, tier in TIER_THRESHOLDS:
        if score >= minimum:
            return tier
    return QualityTier.POOR


def recommend_activity(
    hours: Sequence[Any],
    profile: ActivityProfile,
    *,
    tz: str | tzinfo | None = None,
) -> Recommendation:
    """Build the recommendation for a single activity."""
    best, score = find_best_hour(hours, profile, tz=tz)
    return Recommendation(
        activity=profile.key,
        label=profile.label,
        category=profile.category,
        icon=profile.icon,
        hour=hour_of_day(best, tz) if best is not None else None,
        time=local_time(best, tz) if best is not None else None,
        score=score,
        tier=quality_tier(score) if best is not None else QualityTier.POOR,
    )


def recommend_activities(
    forecast: WeatherForecast | Mapping[str, Any] | Sequence[Any] | None,
    profiles: Mapping[str, ActivityProfile] | None = None,
    *,
    tz: str | tzinfo | None = None,
) -> list[Recommendation]:
    """
    Recommend the best hour for every configured activity, in table order.

    `forecast` may be a WeatherForecast, a raw One Call style payload
    (`{"timezone", "current", "hourly"}`) or a plain sequence of hour
    records. The forecast's own timezone is used to localise epoch-only
    records unless `tz` is given.
    """
    if isinstance(forecast, Mapping):
        forecast = parse_onecall_payload(forecast, timezone=tz if isinstance(tz, str) else None)
    if isinstance(forecast, WeatherForecast):
        hours = forecast.hourly
        tz = tz or forecast.timezone
    elif forecast is None:
        hours = []
    elif isinstance(forecast, (str, bytes)) or not isinstance(forecast, Iterable):
        raise TypeError(f"Unsupported forecast type: {type(forecast).__name__}")
    else:
        hours = list(forecast)
    table = DEFAULT_ACTIVITY_PROFILES if profiles is None else profiles
    return [recommend_activity(hours, profile, tz=tz) for profile in table.values()]


# Headline-condition suggestions shown next to the scored recommendations.
_FAIR_WEATHER = (
    ConditionSuggestion(name="Running", icon="running", time="7:00 AM", tier=QualityTier.EXCELLENT),
    ConditionSuggestion(name="Cycling", icon="bicycle", time="8:00 AM", tier=QualityTier.GOOD),
)
_WET_WEATHER = (
    ConditionSuggestion(name="Reading", icon="book", time="Anytime", tier=QualityTier.GOOD),
    ConditionSuggestion(name="Watching Movies", icon="video", time="Evening", tier=QualityTier.EXCELLENT),
)
_OTHER_WEATHER = (
    ConditionSuggestion(name="Gardening", icon="tree", time="4:00 PM", tier=QualityTier.FAIR),
    ConditionSuggestion(name="Hiking", icon="hiking", time="9:00 AM", tier=QualityTier.GOOD),
)


def suggest_for_condition(condition: str | None) -> list[ConditionSuggestion]:
    """Return static suggestions for the current headline condition (e.g. "Rain")."""
    text = condition or ""
    if "Clear" in text or "Cloud" in text:
        return list(_FAIR_WEATHER)
    if "Rain" in text or "Thunderstorm" in text or "Drizzle" in text:
        return list(_WET_WEATHER)
    return list(_OTHER_WEATHER)


def build_recommendation_payload(
    forecast: WeatherForecast,
    location: Location,
    *,
    profiles: Mapping[str, ActivityProfile] | None = None,
    source: str | None = None,
) -> RecommendationPayload:
    """Run one full recommendation cycle over a fetched forecast."""
    condition = forecast.current.condition if forecast.current else None
    return RecommendationPayload(
        context=RecommendationContext(
            location=location,
            timezone=forecast.timezone,
            generated_at=datetime.now(timezone.utc),
            source=source,
        ),
        recommendations=recommend_activities(forecast, profiles),
        suggestions=suggest_for_condition(condition),
    )
