"""
NewsGuard - Quota Limiter
=========================

Sliding-window limiter for the classifier's requests-per-minute quota.

DESIGN:
    The window is a deque of timestamps of granted permits. Every access
    first prunes timestamps older than the window, then admits the caller
    if fewer than `limit` remain. Prune and append happen under one
    asyncio.Lock, so concurrent callers can never push the window past
    the limit.

    A caller that cannot be admitted sleeps until the oldest permit ages
    out or its own patience runs out, whichever is sooner, then retries.
    Callers that give up get TimedOut and leave no trace in the window.

Usage:
    limiter = QuotaLimiter(limit=60)

    result = await limiter.acquire(max_wait=3.0)
    if isinstance(result, TimedOut):
        return Unavailable("quota wait exceeded")
"""

import asyncio
import time
from collections import deque
from typing import Callable, Deque

from newsguard.services.moderation.models import AcquireResult, Permit, QuotaUsage, TimedOut


# =============================================================================
# Constants
# =============================================================================

DEFAULT_LIMIT = 60
DEFAULT_WINDOW_SECONDS = 60.0
MIN_SLEEP = 0.001


# =============================================================================
# Quota Limiter
# =============================================================================

class QuotaLimiter:
    """
    Shared gate in front of every outbound classifier request.

    Attributes:
        limit: Maximum permits in any trailing window.
        window_seconds: Length of the trailing window.
    """

    def __init__(
        self,
        limit: int = DEFAULT_LIMIT,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._window: Deque[float] = deque()
        self._lock = asyncio.Lock()
        self._waiting = 0

    # =========================================================================
    # Window Maintenance
    # =========================================================================

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._window and self._window[0] <= cutoff:
            self._window.popleft()

    # =========================================================================
    # Acquire
    # =========================================================================

    async def acquire(self, max_wait: float) -> AcquireResult:
        """
        Take one permit, waiting at most max_wait seconds for a free slot.

        Args:
            max_wait: Caller's patience in seconds. Zero means "no waiting".

        Returns:
            Permit when admitted, TimedOut otherwise.
        """
        start = self._clock()
        deadline = start + max(max_wait, 0.0)
        queued = False

        try:
            while True:
                async with self._lock:
                    now = self._clock()
                    self._prune(now)
                    if len(self._window) < self.limit:
                        self._window.append(now)
                        return Permit(granted_at=now, waited=now - start)
                    retry_at = self._window[0] + self.window_seconds

                remaining = deadline - now
                if remaining <= 0:
                    return TimedOut(waited=now - start)

                if not queued:
                    queued = True
                    self._waiting += 1

                await asyncio.sleep(max(min(retry_at - now, remaining), MIN_SLEEP))
        finally:
            if queued:
                self._waiting -= 1

    # =========================================================================
    # Introspection
    # =========================================================================

    def usage(self) -> QuotaUsage:
        """Current window occupancy and number of callers waiting."""
        self._prune(self._clock())
        used = len(self._window)
        return QuotaUsage(
            used=used,
            limit=self.limit,
            percentage=used / self.limit * 100,
            queue_length=self._waiting,
        )


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["QuotaLimiter", "DEFAULT_LIMIT", "DEFAULT_WINDOW_SECONDS"]
