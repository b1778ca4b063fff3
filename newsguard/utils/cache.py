"""
NewsGuard - In-Memory TTL Cache
===============================

Bounded in-process map whose entries carry an absolute expiry.

DESIGN:
    Entries store the wall-clock time they stop being valid rather than
    the time they were cached, so a caller can hand in an expiry read
    back from the durable store unchanged. The clock is injectable for
    tests. Expired entries are evicted lazily on access.

    Safe for single-threaded async use: no method awaits, so a coroutine
    never observes a half-applied update.
"""

import time
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class TTLCache(Generic[K, V]):
    """
    Expiring map with a size cap.

    A full cache first drops expired entries, then the one due soonest.
    """

    def __init__(
        self,
        ttl: float,
        max_size: int = 1000,
        clock: Callable[[], float] = time.time,
    ):
        self._ttl = ttl
        self._max_size = max_size
        self._clock = clock
        self._cache: Dict[K, Tuple[V, float]] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: K) -> Optional[V]:
        """Live value for key, or None. An expired entry is removed."""
        entry = self._cache.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._clock() >= expires_at:
            self._cache.pop(key, None)
            return None
        return value

    def set(
        self,
        key: K,
        value: V,
        ttl: Optional[float] = None,
        expires_at: Optional[float] = None,
    ) -> float:
        """
        Store value under key.

        Args:
            ttl: Seconds to live, defaulting to the cache TTL.
            expires_at: Absolute expiry; wins over ttl when given.

        Returns:
            The absolute expiry stored with the entry.
        """
        if expires_at is None:
            expires_at = self._clock() + (self._ttl if ttl is None else ttl)

        if len(self._cache) >= self._max_size and key not in self._cache:
            self._evict()

        self._cache[key] = (value, expires_at)
        return expires_at

    def delete(self, key: K) -> bool:
        return self._cache.pop(key, None) is not None

    def _evict(self) -> None:
        """Drop expired entries, else the one expiring soonest."""
        if self.cleanup_expired() or not self._cache:
            return
        soonest = min(self._cache, key=lambda k: self._cache[k][1])
        del self._cache[soonest]

    def cleanup_expired(self) -> int:
        """Drop every expired entry and return how many went."""
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._cache.items() if now >= expires_at]
        for key in expired:
            del self._cache[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: K) -> bool:
        return self.get(key) is not None


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["TTLCache"]
