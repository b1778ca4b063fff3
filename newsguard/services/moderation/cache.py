"""
NewsGuard - Moderation Result Cache
===================================

Two-tier cache for classifier results and fused verdicts.

DESIGN:
    Memory tier: a bounded TTLCache answering repeat lookups without I/O.
    Durable tier: the moderation_cache table, so results survive restarts.

    A durable hit is copied into memory with its original expiry. Writes
    go to both tiers; the last write wins. Any failure in the durable
    tier is logged and treated as a miss, so moderation never depends
    on the cache being healthy.
"""

import json
import sqlite3
import time
from typing import Any, Callable, Dict, Optional

from newsguard.core.database import DatabaseManager
from newsguard.core.logger import logger
from newsguard.utils.cache import TTLCache
from newsguard.utils.metrics import CACHE_ERRORS, CACHE_HITS, CACHE_MISSES, MetricsCollector, metrics


# =============================================================================
# Constants
# =============================================================================

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_MEMORY_ITEMS = 5000

CLASSIFIER_NAMESPACE = "classifier"
VERDICT_NAMESPACE = "verdict"


# =============================================================================
# Result Cache
# =============================================================================

class ResultCache:
    """
    Namespaced key/value cache of JSON-serializable dicts.

    Attributes:
        namespace: Row prefix separating this cache from its siblings.
        ttl: Lifetime of new entries in seconds.
    """

    def __init__(
        self,
        namespace: str,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        db: Optional[DatabaseManager] = None,
        max_memory_items: int = DEFAULT_MEMORY_ITEMS,
        clock: Callable[[], float] = time.time,
        collector: Optional[MetricsCollector] = None,
    ) -> None:
        self.namespace = namespace
        self.ttl = ttl_seconds
        self._db = db
        self._clock = clock
        self._metrics = collector or metrics
        self._memory: TTLCache[str, Dict[str, Any]] = TTLCache(
            ttl=ttl_seconds, max_size=max_memory_items, clock=clock,
        )

    @property
    def durable(self) -> bool:
        return self._db is not None

    # =========================================================================
    # Lookup
    # =========================================================================

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a live entry.

        Returns:
            The stored dict, or None when absent, expired or unreadable.
        """
        value = self._memory.get(key)
        if value is not None:
            self._metrics.increment(CACHE_HITS)
            return value

        value = self._get_durable(key)
        if value is None:
            self._metrics.increment(CACHE_MISSES)
            return None

        self._metrics.increment(CACHE_HITS)
        return value

    def _get_durable(self, key: str) -> Optional[Dict[str, Any]]:
        if self._db is None:
            return None

        try:
            row = self._db.get_cache_entry(self.namespace, key)
            if row is None:
                return None

            payload, expires_at = row
            if self._clock() >= expires_at:
                self._db.delete_cache_entry(self.namespace, key)
                return None

            value = json.loads(payload)
            if not isinstance(value, dict):
                raise ValueError(f"expected object, got {type(value).__name__}")
        except (sqlite3.Error, ValueError) as e:
            self._report_failure("read", key, e)
            return None

        self._memory.set(key, value, expires_at=expires_at)
        return value

    # =========================================================================
    # Mutation
    # =========================================================================

    def put(self, key: str, value: Dict[str, Any], ttl: Optional[float] = None) -> None:
        """Store value under key in both tiers. Never raises."""
        expires_at = self._memory.set(key, value, ttl=ttl)

        if self._db is None:
            return

        try:
            self._db.set_cache_entry(self.namespace, key, json.dumps(value), expires_at)
        except (sqlite3.Error, TypeError, ValueError) as e:
            self._report_failure("write", key, e)

    def delete(self, key: str) -> None:
        self._memory.delete(key)
        if self._db is None:
            return
        try:
            self._db.delete_cache_entry(self.namespace, key)
        except sqlite3.Error as e:
            self._report_failure("delete", key, e)

    def purge_expired(self) -> int:
        """
        Drop expired entries from both tiers.

        Returns:
            Number of entries removed (durable rows cover every namespace).
        """
        removed = self._memory.cleanup_expired()
        if self._db is None:
            return removed
        try:
            removed += self._db.purge_expired_cache(self._clock())
        except sqlite3.Error as e:
            self._report_failure("purge", "*", e)
        return removed

    def __len__(self) -> int:
        if self._db is None:
            return len(self._memory)
        try:
            return self._db.count_cache_entries(self.namespace)
        except sqlite3.Error as e:
            self._report_failure("count", "*", e)
            return len(self._memory)

    # =========================================================================
    # Failure Reporting
    # =========================================================================

    def _report_failure(self, operation: str, key: str, error: Exception) -> None:
        self._metrics.increment(CACHE_ERRORS)
        logger.warning("Moderation Cache Failure", [
            ("Namespace", self.namespace),
            ("Operation", operation),
            ("Key", key[:16]),
            ("Error Type", type(error).__name__),
            ("Error", str(error)[:100]),
        ])


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "ResultCache",
    "CLASSIFIER_NAMESPACE",
    "VERDICT_NAMESPACE",
    "DEFAULT_TTL_SECONDS",
]
