"""
NewsGuard - Utils Package
=========================

Stateless helpers usable anywhere in the codebase.

Available Utilities:
    TTLCache: Bounded in-memory cache with absolute expiry
    Metrics: Rolling timings and counters
    Async: Timeout and error containment helpers
"""

from .cache import TTLCache
from .metrics import MetricsCollector, MetricStats, metrics
from .async_utils import create_safe_task, safe_async_operation, with_timeout


__all__ = [
    "TTLCache",
    "MetricsCollector",
    "MetricStats",
    "metrics",
    "create_safe_task",
    "safe_async_operation",
    "with_timeout",
]
