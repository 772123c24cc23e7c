"""Location resolution and persistence over the pluggable cache store."""
from datetime import datetime, timezone
from typing import Optional

import redis
from pydantic import ValidationError

from outdoor_planner.cache_store import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore
from outdoor_planner.config import settings
from outdoor_planner.domain import Location
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="location_service")

SEARCHED_LOCATION_KEY = "weather_location"
USER_LOCATION_KEY = "user_location"
DEFAULT_CLIENT_ID = "default"


def _init_store() -> KeyValueStore:
    """Initialize the backing cache store based on configuration."""
    if settings.cache_redis_url:
        logger.debug("Initializing cache store", extra={"redis_url": mask_url(settings.cache_redis_url)})
        try:
            client = redis.Redis.from_url(settings.cache_redis_url)
            client.ping()
            logger.info("Using RedisKeyValueStore", extra={"redis_url": mask_url(settings.cache_redis_url)})
            return RedisKeyValueStore(client, prefix=settings.cache_prefix)
        except Exception as exc:  # pragma: no cover - depends on a live server
            logger.warning("Falling back to InMemoryKeyValueStore (Redis unavailable)", extra={"error": str(exc)})
    return InMemoryKeyValueStore()


_store: KeyValueStore = _init_store()


def get_store() -> KeyValueStore:
    """Return the active cache store (shared with the forecast cache)."""
    return _store


def use_in_memory_store_for_tests() -> KeyValueStore:
    """Override store for tests to ensure isolation and determinism."""
    global _store
    _store = InMemoryKeyValueStore()
    return _store


def _key(client_id: str, name: str) -> str:
    return f"{client_id or DEFAULT_CLIENT_ID}:{name}"


def _load(key: str) -> Optional[Location]:
    raw = _store.get(key)
    if not raw:
        return None
    try:
        return Location.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Discarding unreadable saved location", extra={"key": key, "error": str(exc)})
        return None


def _save(key: str, location: Location, ttl_seconds: int | None = None) -> Location:
    stamped = location.model_copy(update={"saved_at": datetime.now(timezone.utc)})
    _store.set(key, stamped.model_dump(mode="json"), ttl_seconds=ttl_seconds)
    return stamped


def save_searched_location(location: Location, client_id: str = DEFAULT_CLIENT_ID) -> Location:
    """Remember a searched location; it is preferred while younger than location_ttl_seconds."""
    logger.debug("Saving searched location", extra={"client_id": client_id, "location_name": location.name})
    return _save(_key(client_id, SEARCHED_LOCATION_KEY), location, ttl_seconds=settings.location_ttl_seconds)


def save_user_location(location: Location, client_id: str = DEFAULT_CLIENT_ID) -> Location:
    """Remember the device location reported by the browser."""
    logger.debug("Saving user location", extra={"client_id": client_id})
    return _save(_key(client_id, USER_LOCATION_KEY), location)


def get_saved_location(client_id: str = DEFAULT_CLIENT_ID, *, now: datetime | None = None) -> Optional[Location]:
    """
    Return the location to use for a client:
    - the searched location while it is younger than location_ttl_seconds
    - otherwise the saved user location
    - otherwise None
    """
    now = now or datetime.now(timezone.utc)
    searched = _load(_key(client_id, SEARCHED_LOCATION_KEY))
    if searched is not None and searched.saved_at is not None:
        age = (now - searched.saved_at).total_seconds()
        if age < settings.location_ttl_seconds:
            return searched
        logger.debug("Searched location expired", extra={"client_id": client_id, "age_seconds": age})
    return _load(_key(client_id, USER_LOCATION_KEY))


def default_location() -> Location:
    """The configured fallback location."""
    return Location(
        latitude=settings.default_latitude,
        longitude=settings.default_longitude,
        name=settings.default_location_name,
    )


def resolve_location(
    latitude: float | None = None,
    longitude: float | None = None,
    name: str | None = None,
    client_id: str = DEFAULT_CLIENT_ID,
) -> Location:
    """Explicit coordinates win (and become the user location), then the saved location, then the default."""
    if latitude is not None and longitude is not None:
        return save_user_location(Location(latitude=latitude, longitude=longitude, name=name), client_id)
    saved = get_saved_location(client_id)
    if saved is not None:
        return saved
    return default_location()


def clear_locations() -> None:
    """Clear the backing store (dev/testing)."""
    _store.clear()
