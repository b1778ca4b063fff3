"""
NewsGuard - Moderation Metrics
==============================

Rolling timing samples and counters for the moderation pipeline.

DESIGN:
    Each timing metric keeps a bounded deque of samples, so memory stays
    flat no matter how long the process runs. Counters are plain ints.
    Nothing here touches the network or the event loop; recording is
    safe from any coroutine.

    Metric names used by the engine are collected below so the health
    endpoint and the tests agree on them.
"""

import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Deque, Dict, Generator, List, Optional

from newsguard.core.logger import logger


# =============================================================================
# Constants
# =============================================================================

DEFAULT_WINDOW_SIZE = 200
"""Number of samples to keep per timing metric."""

SLOW_THRESHOLD_MS = 1500
"""Operations taking longer than this (ms) are logged as slow."""

# Timings
CLASSIFIER_LATENCY = "classifier.latency"
EVALUATION_LATENCY = "evaluation.latency"
BATCH_LATENCY = "batch.latency"

# Counters
CACHE_HITS = "cache.hits"
CACHE_MISSES = "cache.misses"
CACHE_ERRORS = "cache.errors"
CLASSIFIER_CALLS = "classifier.calls"
CLASSIFIER_UNAVAILABLE = "classifier.unavailable"
CLASSIFIER_RATE_LIMITED = "classifier.rate_limited"
QUOTA_TIMEOUTS = "quota.timeouts"
ITEM_TIMEOUTS = "evaluation.timeouts"
ITEM_ERRORS = "evaluation.errors"
VERDICTS_BLOCKED = "verdicts.blocked"
VERDICTS_ALLOWED = "verdicts.allowed"


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class MetricStats:
    """Aggregated statistics for a timing metric."""
    name: str
    count: int
    avg_ms: float
    min_ms: float
    max_ms: float
    p50_ms: float
    p95_ms: float
    slow_count: int


# =============================================================================
# Metrics Collector
# =============================================================================

class MetricsCollector:
    """
    Collects and aggregates moderation metrics.

    Attributes:
        window_size: Maximum samples per timing metric.
    """

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE) -> None:
        self.window_size = window_size
        self._samples: Dict[str, Deque[float]] = {}
        self._counters: Dict[str, int] = {}
        self._started = time.monotonic()

    # =========================================================================
    # Recording
    # =========================================================================

    def record(self, name: str, duration_ms: float) -> None:
        """
        Record a timing sample, logging it when unusually slow.

        Args:
            name: Metric name (e.g. CLASSIFIER_LATENCY).
            duration_ms: Duration in milliseconds.
        """
        if name not in self._samples:
            self._samples[name] = deque(maxlen=self.window_size)
        self._samples[name].append(duration_ms)

        if duration_ms > SLOW_THRESHOLD_MS:
            logger.warning("Slow Operation Detected", [
                ("Metric", name),
                ("Duration", f"{duration_ms:.0f}ms"),
                ("Threshold", f"{SLOW_THRESHOLD_MS}ms"),
            ])

    def increment(self, name: str, amount: int = 1) -> None:
        self._counters[name] = self._counters.get(name, 0) + amount

    def get_counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def get_counters(self) -> Dict[str, int]:
        return dict(self._counters)

    @contextmanager
    def timer(self, name: str) -> Generator[None, None, None]:
        """
        Time the enclosed block.

        Example:
            with metrics.timer(CLASSIFIER_LATENCY):
                status, body = await self._post(payload)
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, (time.perf_counter() - start) * 1000)

    # =========================================================================
    # Aggregation
    # =========================================================================

    def get_stats(self, name: str) -> Optional[MetricStats]:
        """
        Calculate statistics for a timing metric.

        Returns:
            MetricStats or None if no samples exist.
        """
        samples = self._samples.get(name)
        if not samples:
            return None

        values: List[float] = sorted(samples)
        count = len(values)

        def percentile(p: float) -> float:
            return values[min(int(count * p / 100), count - 1)]

        return MetricStats(
            name=name,
            count=count,
            avg_ms=sum(values) / count,
            min_ms=values[0],
            max_ms=values[-1],
            p50_ms=percentile(50),
            p95_ms=percentile(95),
            slow_count=sum(1 for v in values if v > SLOW_THRESHOLD_MS),
        )

    def cache_hit_rate(self) -> float:
        """Fraction of cache lookups that hit, 0.0 before any lookup."""
        hits = self.get_counter(CACHE_HITS)
        total = hits + self.get_counter(CACHE_MISSES)
        return hits / total if total else 0.0

    def get_summary(self) -> Dict[str, Any]:
        """
        Summary of every metric and counter.

        Returns:
            Dictionary with uptime, counters, hit rate and timing stats.
        """
        timings = {}
        for name in self._samples:
            stats = self.get_stats(name)
            if stats is None:
                continue
            timings[name] = {
                "count": stats.count,
                "avg_ms": round(stats.avg_ms, 2),
                "p50_ms": round(stats.p50_ms, 2),
                "p95_ms": round(stats.p95_ms, 2),
                "max_ms": round(stats.max_ms, 2),
                "slow_count": stats.slow_count,
            }

        return {
            "uptime_seconds": round(time.monotonic() - self._started, 1),
            "counters": self.get_counters(),
            "cache_hit_rate": round(self.cache_hit_rate(), 4),
            "timings": timings,
        }


# =============================================================================
# Global Instance
# =============================================================================

metrics = MetricsCollector()
"""Process-wide collector used when none is injected."""


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "MetricsCollector",
    "MetricStats",
    "metrics",
    "SLOW_THRESHOLD_MS",
    "CLASSIFIER_LATENCY",
    "EVALUATION_LATENCY",
    "BATCH_LATENCY",
    "CACHE_HITS",
    "CACHE_MISSES",
    "CACHE_ERRORS",
    "CLASSIFIER_CALLS",
    "CLASSIFIER_UNAVAILABLE",
    "CLASSIFIER_RATE_LIMITED",
    "QUOTA_TIMEOUTS",
    "ITEM_TIMEOUTS",
    "ITEM_ERRORS",
    "VERDICTS_BLOCKED",
    "VERDICTS_ALLOWED",
]
