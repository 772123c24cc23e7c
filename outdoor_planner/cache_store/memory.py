"""In-memory key-value store with per-key expiry, intended for single-process use and tests."""

import copy
import threading
import time
from typing import Any, Optional

from outdoor_planner.cache_store.base import KeyValueStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/in_memory_store")


class InMemoryKeyValueStore(KeyValueStore):
    """Thread-safe, TTL-aware in-memory store."""

    def __init__(self, default_ttl_seconds: int | None = None) -> None:
        """Initialize the store; keys without an explicit TTL use `default_ttl_seconds` (None = never)."""
        logger.debug("Initializing InMemoryKeyValueStore")
        self.default_ttl = default_ttl_seconds
        self._items: dict[str, tuple[Any, float | None]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _expired(exp: float | None) -> bool:
        return exp is not None and exp <= time.monotonic()

    def get(self, key: str) -> Optional[Any]:
        """Return a copy of the stored value, or None if missing/expired."""
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            value, exp = item
            if self._expired(exp):
                self._items.pop(key, None)
                return None
            # callers always get their own copy
            return copy.deepcopy(value)

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Store a value with an optional TTL in seconds."""
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        exp = None if ttl is None else time.monotonic() + ttl
        with self._lock:
            self._items[key] = (copy.deepcopy(value), exp)

    def delete(self, key: str) -> None:
        """Remove a key if it exists."""
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        """Clear all keys."""
        with self._lock:
            self._items.clear()
