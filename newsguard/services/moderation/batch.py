"""
NewsGuard - Batch Evaluator
===========================

Evaluates a list of news items under per-item and whole-batch deadlines.

DESIGN:
    Items are dispatched one at a time, a few tens of milliseconds apart,
    and at most `concurrency` run at once. The shared QuotaLimiter behind
    the classifier keeps the aggregate request rate inside the quota no
    matter how many items overlap.

    Every item ends with a verdict:
    - finished in time        -> its real verdict
    - per-item deadline hit   -> "assumed safe" placeholder
    - raised unexpectedly     -> "assumed safe" placeholder
    - batch deadline hit      -> "assumed safe" placeholder, no attempt made

    Results are written by index, so the output lines up with the input
    whatever order the items complete in.
"""

import asyncio
import time
from typing import Any, List, Optional, Sequence

from newsguard.core.logger import logger
from newsguard.services.moderation.fuser import DecisionFuser
from newsguard.services.moderation.models import ModerationOptions, ModerationVerdict, TIMEOUT_REASON
from newsguard.utils.metrics import BATCH_LATENCY, ITEM_ERRORS, ITEM_TIMEOUTS, MetricsCollector, metrics


# =============================================================================
# Constants
# =============================================================================

DEFAULT_ITEM_TIMEOUT = 2.0
DEFAULT_BATCH_TIMEOUT = 10.0
DEFAULT_CONCURRENCY = 5
DEFAULT_PACING_DELAY = 0.05


# =============================================================================
# Batch Evaluator
# =============================================================================

class BatchEvaluator:
    """
    Bounded-latency, bounded-concurrency evaluation of many items.

    Attributes:
        item_timeout: Seconds allowed for one item.
        batch_timeout: Seconds allowed for the whole batch.
        concurrency: Items evaluated at the same time.
        pacing_delay: Seconds between two dispatches.
    """

    def __init__(
        self,
        fuser: DecisionFuser,
        item_timeout: float = DEFAULT_ITEM_TIMEOUT,
        batch_timeout: float = DEFAULT_BATCH_TIMEOUT,
        concurrency: int = DEFAULT_CONCURRENCY,
        pacing_delay: float = DEFAULT_PACING_DELAY,
        collector: Optional[MetricsCollector] = None,
    ) -> None:
        self.fuser = fuser
        self.item_timeout = item_timeout
        self.batch_timeout = batch_timeout
        self.concurrency = max(1, concurrency)
        self.pacing_delay = max(0.0, pacing_delay)
        self._metrics = collector or metrics

    async def evaluate_all(
        self,
        items: Sequence[Any],
        options: Optional[ModerationOptions] = None,
    ) -> List[ModerationVerdict]:
        """
        Evaluate every item, index-aligned with the input.

        Args:
            items: ContentItem-like objects (title, summary, source).
            options: Shared per-call knobs.

        Returns:
            One verdict per item, never raising.
        """
        if not items:
            return []

        loop = asyncio.get_running_loop()
        started = time.perf_counter()
        deadline = loop.time() + self.batch_timeout
        results: List[Optional[ModerationVerdict]] = [None] * len(items)
        semaphore = asyncio.Semaphore(self.concurrency)
        tasks: List[asyncio.Task] = []

        async def run(index: int, item: Any) -> None:
            try:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    return
                results[index] = await asyncio.wait_for(
                    self.fuser.evaluate(item.title, item.summary, item.source, options),
                    timeout=min(self.item_timeout, remaining),
                )
            except asyncio.TimeoutError:
                self._metrics.increment(ITEM_TIMEOUTS)
                results[index] = ModerationVerdict.assumed_safe(TIMEOUT_REASON)
            except Exception as e:
                self._metrics.increment(ITEM_ERRORS)
                logger.warning("Batch Item Failed", [
                    ("Index", str(index)),
                    ("Error Type", type(e).__name__),
                    ("Error", str(e)[:100]),
                ])
                results[index] = ModerationVerdict.assumed_safe(TIMEOUT_REASON)
            finally:
                semaphore.release()

        async def dispatch_all() -> None:
            for index, item in enumerate(items):
                await semaphore.acquire()
                tasks.append(asyncio.create_task(run(index, item)))
                if self.pacing_delay and index < len(items) - 1:
                    await asyncio.sleep(self.pacing_delay)
            await asyncio.gather(*tasks)

        try:
            await asyncio.wait_for(dispatch_all(), timeout=self.batch_timeout)
        except asyncio.TimeoutError:
            pass  # Unfinished items get placeholders below
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        skipped = sum(1 for verdict in results if verdict is None)
        if skipped:
            self._metrics.increment(ITEM_TIMEOUTS, skipped)
            logger.warning("Batch Deadline Reached", [
                ("Items", str(len(items))),
                ("Unfinished", str(skipped)),
                ("Deadline", f"{self.batch_timeout}s"),
            ])

        duration_ms = (time.perf_counter() - started) * 1000
        self._metrics.record(BATCH_LATENCY, duration_ms)

        verdicts = [verdict or ModerationVerdict.assumed_safe(TIMEOUT_REASON) for verdict in results]
        logger.debug("Batch Moderated", [
            ("Items", str(len(verdicts))),
            ("Blocked", str(sum(1 for v in verdicts if v.is_blocked))),
            ("Duration", f"{duration_ms:.0f}ms"),
        ])
        return verdicts


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["BatchEvaluator"]
