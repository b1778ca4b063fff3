"""
NewsGuard - Classifier Client
=============================

Quota-gated client for a Perspective-compatible toxicity classifier.

DESIGN:
    classify() never raises. Every way the classifier can fail to answer
    (missing key, short text, quota wait exceeded, transport error,
    non-2xx status, malformed body) comes back as Unavailable with a
    reason, and the decision fuser carries on without the signal.

    Checks run cheapest first: credential, length, cache, quota, network.
    A cache hit therefore costs no quota. Successful results are cached
    before they are returned.
"""

import asyncio
import json
from typing import Any, Dict, Optional, Tuple

import aiohttp

from newsguard.core.config import DEFAULT_PERSPECTIVE_ENDPOINT
from newsguard.core.logger import logger
from newsguard.services.moderation.cache import ResultCache
from newsguard.services.moderation.models import (
    ClassifierResult,
    ClassifierScores,
    TimedOut,
    Unavailable,
    fingerprint,
)
from newsguard.services.moderation.quota import QuotaLimiter
from newsguard.utils.metrics import (
    CLASSIFIER_CALLS,
    CLASSIFIER_LATENCY,
    CLASSIFIER_RATE_LIMITED,
    CLASSIFIER_UNAVAILABLE,
    QUOTA_TIMEOUTS,
    MetricsCollector,
    metrics,
)


# =============================================================================
# Constants
# =============================================================================

REQUESTED_ATTRIBUTES = (
    "TOXICITY",
    "SEVERE_TOXICITY",
    "IDENTITY_ATTACK",
    "INSULT",
    "PROFANITY",
    "THREAT",
    "SEXUALLY_EXPLICIT",
    "FLIRTATION",
)

MIN_TEXT_LENGTH = 20
"""Shorter texts are not worth a classifier request."""

USAGE_WARNING_PERCENT = 80.0


# =============================================================================
# Classifier Client
# =============================================================================

class ClassifierClient:
    """
    Toxicity classifier behind the shared quota limiter.

    Attributes:
        enabled: True when an API key is configured.
    """

    def __init__(
        self,
        api_key: Optional[str],
        limiter: QuotaLimiter,
        cache: Optional[ResultCache] = None,
        endpoint: str = DEFAULT_PERSPECTIVE_ENDPOINT,
        quota_wait: float = 3.0,
        request_timeout: float = 5.0,
        min_text_length: int = MIN_TEXT_LENGTH,
        collector: Optional[MetricsCollector] = None,
    ) -> None:
        self._api_key = api_key
        self.limiter = limiter
        self.cache = cache
        self.endpoint = endpoint
        self.quota_wait = quota_wait
        self.request_timeout = request_timeout
        self.min_text_length = min_text_length
        self._metrics = collector or metrics
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    # =========================================================================
    # Session Management
    # =========================================================================

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create persistent HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
            )
        return self._session

    async def close(self) -> None:
        """Close HTTP session on shutdown."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    # =========================================================================
    # Classification
    # =========================================================================

    async def classify(self, text: str) -> ClassifierResult:
        """
        Score text across the requested attributes.

        Args:
            text: Content to classify.

        Returns:
            ClassifierScores on success, Unavailable on any failure.
        """
        if not self._api_key:
            return self._unavailable("no credential configured", log=False)

        if len(text) < self.min_text_length:
            return self._unavailable("text too short to classify", log=False)

        key = fingerprint(text)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                try:
                    return ClassifierScores.from_dict(cached)
                except (KeyError, TypeError, ValueError):
                    self.cache.delete(key)

        permit = await self.limiter.acquire(self.quota_wait)
        if isinstance(permit, TimedOut):
            self._metrics.increment(QUOTA_TIMEOUTS)
            return self._unavailable(f"quota wait exceeded ({permit.waited:.1f}s)")

        usage = self.limiter.usage()
        if usage.percentage > USAGE_WARNING_PERCENT:
            logger.warning("Classifier Quota Nearly Exhausted", [
                ("Used", f"{usage.used}/{usage.limit}"),
                ("Percentage", f"{usage.percentage:.0f}%"),
                ("Queue", str(usage.queue_length)),
            ])

        result = await self._request(text)
        if isinstance(result, ClassifierScores) and self.cache is not None:
            self.cache.put(key, result.to_dict())
        return result

    async def _request(self, text: str) -> ClassifierResult:
        self._metrics.increment(CLASSIFIER_CALLS)
        try:
            with self._metrics.timer(CLASSIFIER_LATENCY):
                status, body = await self._post(self._build_payload(text))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return self._unavailable(f"request failed: {type(e).__name__}: {str(e)[:80]}")

        if status == 429:
            self._metrics.increment(CLASSIFIER_RATE_LIMITED)
            usage = self.limiter.usage()
            return self._unavailable(f"rate limited by classifier (429, local usage {usage.used}/{usage.limit})")

        if not 200 <= status < 300:
            return self._unavailable(f"classifier returned HTTP {status}: {body[:80]}")

        try:
            return parse_scores(json.loads(body))
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            return self._unavailable(f"malformed response: {str(e)[:80]}")

    def _build_payload(self, text: str) -> Dict[str, Any]:
        return {
            "comment": {"text": text},
            "requestedAttributes": {name: {} for name in REQUESTED_ATTRIBUTES},
            "languages": ["en"],
            "doNotStore": True,
        }

    async def _post(self, payload: Dict[str, Any]) -> Tuple[int, str]:
        """
        POST the analyze request.

        Returns:
            (HTTP status, response body text).
        """
        session = await self._get_session()
        async with session.post(self.endpoint, params={"key": self._api_key}, json=payload) as resp:
            return resp.status, await resp.text()

    def _unavailable(self, reason: str, log: bool = True) -> Unavailable:
        self._metrics.increment(CLASSIFIER_UNAVAILABLE)
        if log:
            logger.warning("Classifier Unavailable", [("Reason", reason)])
        return Unavailable(reason=reason)


# =============================================================================
# Response Parsing
# =============================================================================

def parse_scores(data: Any) -> ClassifierScores:
    """
    Extract lower-cased category scores from an analyze response.

    Uses each attribute's summary score, falling back to its first span
    score. Overall toxicity is the highest category score.

    Raises:
        ValueError: If attributeScores is missing or holds non-numeric scores.
    """
    if not isinstance(data, dict):
        raise ValueError("response is not a JSON object")
    attributes = data.get("attributeScores")
    if not isinstance(attributes, dict) or not attributes:
        raise ValueError("response has no attributeScores")

    categories: Dict[str, float] = {}
    for name, attribute in attributes.items():
        attribute = attribute or {}
        value = (attribute.get("summaryScore") or {}).get("value")
        if value is None:
            spans = attribute.get("spanScores") or []
            value = (spans[0].get("score") or {}).get("value") if spans else None
        score = float(value or 0.0)
        if not 0.0 <= score <= 1.0:
            raise ValueError(f"{name} score out of range: {score}")
        categories[name.lower()] = score

    return ClassifierScores(toxicity=max(categories.values()), categories=categories)


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["ClassifierClient", "parse_scores", "REQUESTED_ATTRIBUTES", "MIN_TEXT_LENGTH"]
