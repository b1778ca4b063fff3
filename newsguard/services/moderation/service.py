"""
NewsGuard - Moderation Service
==============================

Public entry point of the moderation engine.

DESIGN:
    Wires one shared QuotaLimiter, one durable store and two caches
    (classifier results, verdicts) into the classifier, fuser and batch
    evaluator, then exposes the operations callers need:

    - evaluate / evaluate_text   single item
    - evaluate_all               list of items, index-aligned
    - filter_safe                list of items minus the blocked ones
    - usage                      quota occupancy and queue length

    No exception escapes a public method. Timeouts and unexpected errors
    resolve to the "assumed safe" placeholder with a logged warning.
"""

import sqlite3
from typing import Any, List, Optional, Sequence

from newsguard.core.config import Config, get_config
from newsguard.core.database import DatabaseManager
from newsguard.core.logger import logger
from newsguard.services.moderation.batch import BatchEvaluator
from newsguard.services.moderation.cache import CLASSIFIER_NAMESPACE, VERDICT_NAMESPACE, ResultCache
from newsguard.services.moderation.classifier import ClassifierClient
from newsguard.services.moderation.fuser import DEFAULT_THRESHOLDS, Classifier, DecisionFuser, Thresholds
from newsguard.services.moderation.models import (
    ContentItem,
    ModerationOptions,
    ModerationVerdict,
    QuotaUsage,
    TIMEOUT_REASON,
)
from newsguard.services.moderation.quota import QuotaLimiter
from newsguard.utils.async_utils import safe_async_operation, with_timeout
from newsguard.utils.metrics import MetricsCollector, metrics


# =============================================================================
# Moderation Service
# =============================================================================

class ModerationService:
    """
    Facade over the moderation pipeline.

    Collaborators can be injected for tests; anything left out is built
    from the config.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        classifier: Optional[Classifier] = None,
        db: Optional[DatabaseManager] = None,
        limiter: Optional[QuotaLimiter] = None,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
        collector: Optional[MetricsCollector] = None,
    ) -> None:
        self.config = config or get_config()
        self.metrics = collector or metrics
        self.db = db

        ttl = self.config.cache_ttl_seconds
        self.limiter = limiter or QuotaLimiter(limit=self.config.requests_per_minute)
        self.classifier_cache = ResultCache(CLASSIFIER_NAMESPACE, ttl, db=db, collector=self.metrics)
        self.verdict_cache = ResultCache(VERDICT_NAMESPACE, ttl, db=db, collector=self.metrics)

        self.classifier = classifier or ClassifierClient(
            api_key=self.config.perspective_api_key,
            limiter=self.limiter,
            cache=self.classifier_cache,
            endpoint=self.config.perspective_endpoint,
            quota_wait=self.config.quota_wait,
            request_timeout=self.config.request_timeout,
            min_text_length=self.config.min_text_length,
            collector=self.metrics,
        )
        self.fuser = DecisionFuser(self.classifier, self.verdict_cache, thresholds, self.metrics)
        self.batch = BatchEvaluator(
            self.fuser,
            item_timeout=self.config.item_timeout,
            batch_timeout=self.config.batch_timeout,
            concurrency=self.config.batch_concurrency,
            pacing_delay=self.config.pacing_delay,
            collector=self.metrics,
        )

        logger.tree("Moderation Service Initialized", [
            ("Classifier", type(self.classifier).__name__),
            ("Quota", f"{self.limiter.limit}/{self.limiter.window_seconds:.0f}s"),
            ("Cache", "sqlite + memory" if db is not None else "memory"),
            ("Item Timeout", f"{self.config.item_timeout}s"),
            ("Batch Timeout", f"{self.config.batch_timeout}s"),
        ], emoji="🛡️")

    # =========================================================================
    # Single Item
    # =========================================================================

    async def evaluate(
        self,
        title: str,
        summary: str,
        source: str,
        options: Optional[ModerationOptions] = None,
    ) -> ModerationVerdict:
        """
        Moderate one news item.

        Args:
            title: Headline.
            summary: Teaser or body excerpt.
            source: Publisher name.
            options: Per-call knobs.

        Returns:
            The verdict, or the "assumed safe" placeholder on timeout/error.
        """
        verdict = await with_timeout(
            safe_async_operation("Evaluate", self.fuser.evaluate(title, summary, source, options)),
            timeout=self.config.item_timeout,
            name="Evaluate",
        )
        return verdict or ModerationVerdict.assumed_safe(TIMEOUT_REASON)

    async def evaluate_text(
        self,
        text: str,
        options: Optional[ModerationOptions] = None,
    ) -> ModerationVerdict:
        verdict = await with_timeout(
            safe_async_operation("Evaluate Text", self.fuser.evaluate_text(text, options)),
            timeout=self.config.item_timeout,
            name="Evaluate Text",
        )
        return verdict or ModerationVerdict.assumed_safe(TIMEOUT_REASON)

    # =========================================================================
    # Batches
    # =========================================================================

    async def evaluate_all(
        self,
        items: Sequence[Any],
        options: Optional[ModerationOptions] = None,
    ) -> List[ModerationVerdict]:
        """
        Moderate a list of items within the batch deadline.

        Returns:
            Verdicts index-aligned with items.
        """
        verdicts = await safe_async_operation(
            "Evaluate Batch",
            self.batch.evaluate_all(items, options),
            log_level="error",
        )
        if verdicts is None:
            return [ModerationVerdict.assumed_safe(TIMEOUT_REASON) for _ in items]
        return verdicts

    async def filter_safe(
        self,
        items: Sequence[ContentItem],
        options: Optional[ModerationOptions] = None,
    ) -> List[ContentItem]:
        """Keep the items whose verdict does not block, in input order."""
        verdicts = await self.evaluate_all(items, options)
        kept = [item for item, verdict in zip(items, verdicts) if not verdict.should_block()]
        if len(kept) < len(items):
            logger.info("Filtered Blocked Items", [
                ("Received", str(len(items))),
                ("Removed", str(len(items) - len(kept))),
            ])
        return kept

    # =========================================================================
    # Maintenance
    # =========================================================================

    def usage(self) -> QuotaUsage:
        return self.limiter.usage()

    def cache_size(self) -> int:
        return len(self.classifier_cache) + len(self.verdict_cache)

    def purge_expired(self) -> int:
        """Drop expired entries from both caches."""
        removed = self.classifier_cache.purge_expired()
        removed += self.verdict_cache.purge_expired()
        if removed:
            logger.info("Expired Cache Entries Purged", [("Removed", str(removed))])
        return removed

    async def close(self) -> None:
        """Release the HTTP session and the database connection."""
        close = getattr(self.classifier, "close", None)
        if close is not None:
            await close()
        if self.db is not None:
            self.db.close()


# =============================================================================
# Factory
# =============================================================================

def open_cache_db(config: Config) -> Optional[DatabaseManager]:
    """
    Open the durable cache store named by the config.

    Returns:
        The manager, or None for memory-only caching or when the file
        cannot be opened.
    """
    if config.cache_db_path is None:
        return None
    try:
        return DatabaseManager(config.cache_db_path)
    except (sqlite3.Error, OSError) as e:
        logger.error("Cache Store Unavailable", [
            ("Path", str(config.cache_db_path)),
            ("Error", str(e)[:100]),
            ("Fallback", "memory only"),
        ])
        return None


def create_moderation_service(config: Optional[Config] = None) -> ModerationService:
    config = config or get_config()
    return ModerationService(config=config, db=open_cache_db(config))


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "ModerationService",
    "create_moderation_service",
    "open_cache_db",
]
