"""HTTP API for the outdoor activity planner."""

import hmac
from datetime import datetime
from typing import Optional

import redis
from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel, Field

from .config import settings
from .data_sources import build_data_source
from .domain import (
    DEFAULT_ACTIVITY_PROFILES,
    ActivityProfile,
    ConditionSuggestion,
    Location,
    Recommendation,
    RecommendationContext,
)
from .forecast_service import get_cached_forecast, get_forecast, store_forecast
from .location_service import (
    DEFAULT_CLIENT_ID,
    get_saved_location,
    get_store,
    resolve_location,
    save_searched_location,
)
from .models import ForecastUnavailableError, WeatherForecast
from .recommender import build_recommendation_payload
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="outdoor_planner/api")

# Optional Redis client for API key checks; fallback to a static key
_redis_client = None
if settings.api_key_redis_url:
    try:
        _redis_client = redis.Redis.from_url(settings.api_key_redis_url)
        logger.info("API key checks will use Redis backend", extra={"redis_url": mask_url(settings.api_key_redis_url)})
    except Exception as exc:  # pragma: no cover - safety net
        logger.warning("Failed to connect to Redis for API key checks; falling back to static key",
                       extra={"error": str(exc)})


def require_api_key(x_api_key: str | None = Header(default=None)):
    """
    Validate X-API-Key header against Redis (if configured) or the static api_key setting.
    """
    # No key configured anywhere: open access (dev/default mode).
    if not settings.api_key and not _redis_client:
        logger.debug("No API key configured; allowing all requests")
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if _redis_client:
        logger.debug("Checking API key against Redis")
        try:
            if _redis_client.sismember(settings.api_key_redis_set, x_api_key):
                return
        except Exception as e:  # pragma: no cover - depends on a live server
            logger.warning("Redis API key lookup error; falling back to static key",
                           extra={"error": str(e)})

    if settings.api_key and hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


def client_id(x_client_id: str | None = Header(default=None)) -> str:
    """Scope saved locations by the optional X-Client-Id header."""
    return (x_client_id or "").strip() or DEFAULT_CLIENT_ID


router = APIRouter(dependencies=[Depends(require_api_key)])
DATA_SOURCE = build_data_source(settings)


class CurrentConditions(BaseModel):
    """Serialized current observation used in API responses."""
    time: datetime
    temperature: Optional[str] = None
    condition: Optional[str] = None
    description: Optional[str] = None
    humidity: Optional[str] = None
    wind_speed: Optional[str] = None


class HourConditions(BaseModel):
    """Serialized forecast hour used in API responses."""
    time: datetime
    hour: int
    temperature: Optional[str] = None
    wind_speed: Optional[str] = None
    humidity: Optional[str] = None
    precipitation: Optional[str] = None
    condition: Optional[str] = None


class RecommendationsResponse(BaseModel):
    """Everything the page needs for one render."""
    context: RecommendationContext
    current_conditions: CurrentConditions | None = None
    forecast: list[HourConditions] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    suggestions: list[ConditionSuggestion] = Field(default_factory=list)


class LocationRequest(BaseModel):
    """Incoming searched-location payload."""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    name: Optional[str] = None


class LocationResponse(BaseModel):
    """Saved location for the calling client, if any."""
    location: Location | None = None


def _fetch_forecast(location: Location) -> WeatherForecast:
    """Return a TTL-cached forecast for the location, fetching from the provider when stale."""
    store = get_store()
    ttl = settings.conditions_ttl_seconds
    cached = get_cached_forecast(store, location.latitude, location.longitude, ttl_seconds=ttl)
    if cached is not None:
        logger.debug("Using cached forecast", extra={"fetched_at": cached.fetched_at.isoformat()})
        return cached.data

    try:
        forecast = get_forecast(
            location.latitude,
            location.longitude,
            hours=settings.forecast_hours,
            data_source=DATA_SOURCE,
        )
    except ForecastUnavailableError as exc:
        logger.error("Forecast provider failed", extra={"error": str(exc)})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Forecast provider unavailable")

    _ensure_forecast_present(forecast)
    source = getattr(DATA_SOURCE, "name", None)
    store_forecast(store, location.latitude, location.longitude, forecast, ttl_seconds=ttl, source=source)
    return forecast


def _ensure_forecast_present(forecast: WeatherForecast | None) -> None:
    """Raise 404 when the provider returned nothing usable."""
    if forecast is None or (forecast.current is None and not forecast.hourly):
        raise HTTPException(status_code=404, detail="No forecast data available for this location")


def _current_conditions(forecast: WeatherForecast) -> Optional[CurrentConditions]:
    """Convert current weather into serialized API shape."""
    if forecast.current is None:
        return None
    return CurrentConditions(**forecast.current.to_display_strings())


def _forecast_conditions(forecast: WeatherForecast) -> list[HourConditions]:
    """Convert forecast hours into serialized API shape."""
    return [HourConditions(**hour.to_display_strings()) for hour in forecast.hourly]


@router.get("/activities", response_model=list[ActivityProfile])
def list_activities():
    """Return the activity profile table."""
    return list(DEFAULT_ACTIVITY_PROFILES.values())


@router.get("/recommendations", response_model=RecommendationsResponse)
def get_recommendations(
    lat: float | None = Query(default=None, ge=-90, le=90),
    lon: float | None = Query(default=None, ge=-180, le=180),
    name: str | None = Query(default=None, max_length=200),
    client: str = Depends(client_id),
):
    """Recommend the best time today for each activity at the resolved location."""
    if (lat is None) != (lon is None):
        raise HTTPException(
            status_code=422,
            detail="lat and lon must be provided together",
        )

    location = resolve_location(lat, lon, name, client)
    forecast = _fetch_forecast(location)

    payload = build_recommendation_payload(forecast, location, source=getattr(DATA_SOURCE, "name", None))
    logger.info(
        "Built recommendations",
        extra={"client_id": client, "hours_count": len(forecast.hourly)},
    )
    return RecommendationsResponse(
        context=payload.context,
        current_conditions=_current_conditions(forecast),
        forecast=_forecast_conditions(forecast),
        recommendations=payload.recommendations,
        suggestions=payload.suggestions,
    )


@router.get("/location", response_model=LocationResponse)
def get_location(client: str = Depends(client_id)):
    """Return the location currently in effect for the client, if one was saved."""
    return LocationResponse(location=get_saved_location(client))


@router.post("/location", response_model=LocationResponse)
def set_location(req: LocationRequest, client: str = Depends(client_id)):
    """Save a searched location for the client."""
    saved = save_searched_location(
        Location(latitude=req.latitude, longitude=req.longitude, name=req.name),
        client,
    )
    return LocationResponse(location=saved)
