"""Redis-backed key-value store with TTL."""

import json
from datetime import datetime
from typing import Any, Optional

from outdoor_planner.cache_store.base import KeyValueStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/redis_store")


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed cache. Values are stored as JSON under a key prefix.

    Redis errors are logged and reported as cache misses so a flaky cache never
    takes the recommendation page down.
    """

    def __init__(self, client, prefix: str = "planner:", default_ttl_seconds: int | None = None) -> None:
        """Initialize with a Redis client, key prefix and optional default TTL."""
        logger.debug("Initializing RedisKeyValueStore")
        self.client = client
        self.prefix = prefix
        self.default_ttl = default_ttl_seconds

    def _key(self, key: str) -> str:
        """Return the namespaced Redis key."""
        return f"{self.prefix}{key}"

    @staticmethod
    def _json_default(obj):
        """Provide JSON serialization for datetimes."""
        if isinstance(obj, datetime):
            return obj.isoformat()
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")

    def get(self, key: str) -> Optional[Any]:
        """Return the decoded value, or None if missing/unreadable."""
        try:
            raw = self.client.get(self._key(key))
        except Exception as exc:
            logger.error("Failed to read key from Redis: %s", exc)
            return None
        if raw is None:
            return None
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            return json.loads(raw)
        except (UnicodeDecodeError, ValueError) as exc:
            logger.error("Failed to decode cached value for %s: %s", key, exc)
            return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Encode and store a value, using SETEX when a TTL applies."""
        payload = json.dumps(value, default=self._json_default).encode("utf-8")
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        try:
            if ttl is None:
                self.client.set(self._key(key), payload)
            elif ttl > 0:
                self.client.setex(self._key(key), int(ttl), payload)
            else:
                self.client.delete(self._key(key))
        except Exception as exc:
            logger.error("Failed to write key to Redis: %s", exc)

    def delete(self, key: str) -> None:
        """Delete a key if present."""
        try:
            self.client.delete(self._key(key))
        except Exception as exc:
            logger.error("Failed to delete key from Redis: %s", exc)

    def clear(self) -> None:
        """Best-effort clear for all keys under the configured prefix."""
        try:
            for key in self.client.scan_iter(f"{self.prefix}*"):
                self.client.delete(key)
        except Exception as exc:
            logger.error("Failed to clear keys from Redis: %s", exc)
