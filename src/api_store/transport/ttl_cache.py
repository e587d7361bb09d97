"""In-memory TTL cache for GET results.

Owned by a single ApiClient instance; there is no shared or module-level
state, so two clients never see each other's entries.
"""

import time
from collections.abc import Callable
from typing import Any

from loguru import logger

from api_store.entities import CacheEntry
from api_store.protocols import Clock


class TTLCache:
    """Keyed store of recently fetched payloads with per-entry expiry.

    Expiry is lazy: an expired entry reads as absent but stays in the map
    until it is overwritten or invalidated.

    Example:
        ```python
        cache = TTLCache()
        cache.set("GET:/api/v1/course", payload, ttl=300)
        cache.get("GET:/api/v1/course")  # payload, for the next 5 minutes
        cache.invalidate("/course")      # drop every key containing "/course"
        ```
    """

    def __init__(self, clock: Clock | None = None) -> None:
        """Initialize an empty cache.

        Args:
            clock: Monotonic time source in seconds. Defaults to time.monotonic.
        """
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}

    def get_entry(self, key: str) -> CacheEntry | None:
        """Get the entry for ``key`` if it exists and has not expired."""
        entry = self._entries.get(key)
        if entry is None or not entry.is_valid(self._clock()):
            return None
        return entry

    def get(self, key: str, default: Any = None) -> Any:
        """Get the cached value for ``key``.

        Args:
            key: Cache key, conventionally ``"METHOD:url"``
            default: Returned for missing or expired entries

        Returns:
            The cached value or ``default``
        """
        entry = self.get_entry(key)
        return default if entry is None else entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds."""
        if ttl <= 0:
            raise ValueError("ttl must be greater than 0")
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock(), ttl=ttl)

    def invalidate(self, pattern: str | None = None) -> int:
        """Remove entries whose key contains ``pattern``.

        Args:
            pattern: Substring to match. None clears the whole cache.

        Returns:
            Number of entries removed
        """
        if pattern is None:
            removed = len(self._entries)
            self._entries.clear()
        else:
            removed = self._drop(lambda key: pattern in key)
        logger.debug("Cache invalidated (pattern={!r}, removed={})", pattern, removed)
        return removed

    def invalidate_prefix(self, prefix: str) -> int:
        """Remove entries whose key starts with ``prefix``.

        Returns:
            Number of entries removed
        """
        removed = self._drop(lambda key: key.startswith(prefix))
        logger.debug("Cache invalidated (prefix={!r}, removed={})", prefix, removed)
        return removed

    def _drop(self, predicate: Callable[[str], bool]) -> int:
        doomed = [key for key in self._entries if predicate(key)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get_entry(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
