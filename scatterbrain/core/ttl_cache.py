"""Bounded in-memory cache with per-entry TTL.

Entries expire a fixed number of seconds after they were written. When a new
key would push the cache past its capacity, the oldest-inserted entry is
evicted (FIFO by insertion, not LRU). There is no locking: the cache is only
touched from the event loop, and two concurrent writers for the same key
simply leave the last value in place.
"""

import logging
import time
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

DEFAULT_CAPACITY = 100
DEFAULT_TTL_SECONDS = 3600.0


class BoundedTTLCache(Generic[V]):
    """Insertion-ordered cache with capacity and TTL bounds.

    Attributes:
        capacity: Maximum number of live entries.
        ttl_seconds: Lifetime of an entry after it is set.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # dicts keep insertion order, which is the eviction order
        self._entries: dict[str, tuple[float, V]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def _is_expired(self, stored_at: float) -> bool:
        return self._clock() - stored_at >= self.ttl_seconds

    def get(self, key: str) -> V | None:
        """Return the live value for key, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._is_expired(stored_at):
            del self._entries[key]
            logger.debug("Cache entry expired: %s", key[:80])
            return None
        return value

    def set(self, key: str, value: V) -> None:
        """Store value under key, evicting the oldest entry if over capacity.

        Re-setting an existing key refreshes its timestamp and moves it to
        the newest position.
        """
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.capacity:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug("Cache full, evicted oldest entry: %s", oldest[:80])
        self._entries[key] = (self._clock(), value)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)
