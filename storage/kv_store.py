"""Shared key-value store backing the rate limiter and the memoizing cache."""

import threading
import time
from abc import ABC, abstractmethod
from typing import Callable


class StoreUnavailableError(Exception):
    """Raised when the backing store cannot be reached."""


class KeyValueStore(ABC):
    """
    Minimal contract the research core needs from a shared store.

    Implementations must make incr_with_expiry atomic: the increment and the
    expiry refresh happen as one indivisible operation so a counter key can
    never be left without a TTL under concurrent access.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value under key for ttl_seconds."""

    @abstractmethod
    async def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment the counter at key and (re)set its expiry."""


class InMemoryKeyValueStore(KeyValueStore):
    """
    Thread-safe in-process store with per-key TTL.

    Shared by every request in the process. Expired keys are evicted lazily
    on access.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Initialize the store.

        Args:
            clock: Returns current time in seconds (injectable for tests)
        """
        self._data: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _live_value(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def get(self, key: str) -> str | None:
        with self._lock:
            return self._live_value(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._data[key] = (value, self._clock() + ttl_seconds)

    async def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        with self._lock:
            current = self._live_value(key)
            count = int(current) + 1 if current is not None else 1
            self._data[key] = (str(count), self._clock() + ttl_seconds)
            return count

    def clear(self) -> None:
        """Drop every key (for testing)."""
        with self._lock:
            self._data.clear()


# Process-shared store instance
_default_store: InMemoryKeyValueStore | None = None


def get_default_store() -> InMemoryKeyValueStore:
    """
    Get the process-wide store singleton.

    Returns:
        Shared InMemoryKeyValueStore instance
    """
    global _default_store
    if _default_store is None:
        _default_store = InMemoryKeyValueStore()
    return _default_store
