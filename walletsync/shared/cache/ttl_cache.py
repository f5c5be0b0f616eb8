import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

V = TypeVar("V")


class CachePort(ABC, Generic[V]):
    """Key/value cache that reports whether a hit is still fresh."""

    @abstractmethod
    def get(self, key: str) -> Tuple[Optional[V], bool]:
        """Return (value, is_fresh). A miss is (None, False)."""
        pass

    @abstractmethod
    def put(self, key: str, value: V, timestamp: Optional[float] = None) -> None:
        pass

    @abstractmethod
    def invalidate(self, key: str) -> None:
        pass


class InMemoryTTLCache(CachePort[V]):
    """
    Process-local cache with a freshness window.

    Stale entries are kept and returned with is_fresh=False so callers can
    decide between refetching and serving the old value.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}

    def get(self, key: str) -> Tuple[Optional[V], bool]:
        entry = self._entries.get(key)
        if entry is None:
            return None, False
        value, stored_at = entry
        return value, (self._clock() - stored_at) < self.ttl_seconds

    def put(self, key: str, value: V, timestamp: Optional[float] = None) -> None:
        self._entries[key] = (value, self._clock() if timestamp is None else timestamp)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
