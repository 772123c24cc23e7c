"""Shared protocol for key-value cache backends."""

from typing import Any, Optional, Protocol


class KeyValueStore(Protocol):
    """Protocol for cache backends. Values must be JSON-compatible."""

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if missing or expired."""

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Store a value, optionally expiring after `ttl_seconds`."""

    def delete(self, key: str) -> None:
        """Delete a key without raising if it is absent."""

    def clear(self) -> None:
        """Clear every key owned by this store."""
