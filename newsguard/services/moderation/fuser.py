"""
NewsGuard - Decision Fuser
==========================

Turns classifier scores and heuristic annotations into one verdict.

DESIGN:
    The classifier is the only signal allowed to block, and only with
    high confidence. Steps, in order:

    1. Empty text          -> prohibited, blocked, confidence 1.0
    2. Classifier scores   -> tiered thresholds (critical/high/moderate)
       Classifier missing  -> medium, flagged for review, never blocked
    3. Keyword hits        -> merged only when the classifier concurs
    4. Copyright patterns  -> annotate, low becomes medium, never blocks
    5. is_safe = not blocked and not prohibited; cache the verdict

    Thresholds live in a dataclass so strict-mode escalation is policy
    that can be tuned without touching the algorithm.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

from newsguard.core.logger import logger
from newsguard.services.moderation.cache import ResultCache
from newsguard.services.moderation.heuristics import scan_copyright, scan_keywords
from newsguard.services.moderation.models import (
    ClassifierResult,
    ClassifierScores,
    ContentItem,
    ModerationOptions,
    ModerationVerdict,
    RiskLevel,
    Unavailable,
    fingerprint,
)
from newsguard.utils.metrics import (
    EVALUATION_LATENCY,
    VERDICTS_ALLOWED,
    VERDICTS_BLOCKED,
    MetricsCollector,
    metrics,
)


# =============================================================================
# Constants
# =============================================================================

UNAVAILABLE_REASON = "Moderation service unavailable - flagged for review"
UNCONFIRMED_REASON = "Moderation service unavailable - allowed unconfirmed"
CHECK_FAILED_REASON = "Moderation check unavailable"
STRICT_REASON = "Blocked in strict mode"

UNAVAILABLE_CONFIDENCE = 0.5
KEYWORD_ONLY_CONFIDENCE = 0.3

CRITICAL_LABELS = {
    "severe_toxicity": "Severe toxicity",
    "threat": "Threat",
    "identity_attack": "Identity attack",
    "sexually_explicit": "Sexually explicit content",
}


# =============================================================================
# Policy
# =============================================================================

@dataclass(frozen=True)
class Thresholds:
    """
    Score cutoffs, all exclusive (a score must be strictly greater).

    Attributes:
        critical: Blocks when any critical axis exceeds it.
        high: High risk when toxicity or any critical axis exceeds it.
        moderate: Medium risk when toxicity or a moderate axis exceeds it.
        keyword_concurrence: Classifier score needed to accept keyword hits.
        strict: Strict mode blocks high risk when a strict axis exceeds it.
    """

    critical: float = 0.85
    high: float = 0.75
    moderate: float = 0.60
    keyword_concurrence: float = 0.5
    strict: float = 0.75
    critical_axes: Tuple[str, ...] = ("severe_toxicity", "threat", "identity_attack", "sexually_explicit")
    moderate_axes: Tuple[str, ...] = ("severe_toxicity", "profanity", "insult")
    strict_axes: Tuple[str, ...] = ("severe_toxicity", "threat", "identity_attack")


DEFAULT_THRESHOLDS = Thresholds()


class Classifier(Protocol):
    async def classify(self, text: str) -> ClassifierResult: ...


# =============================================================================
# Decision Fuser
# =============================================================================

class DecisionFuser:
    """
    Evaluates single items against the classifier and the heuristics.

    Every computed verdict is cached per text and option set, including
    those reached while the classifier was unavailable.
    """

    def __init__(
        self,
        classifier: Classifier,
        cache: Optional[ResultCache] = None,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
        collector: Optional[MetricsCollector] = None,
    ) -> None:
        self.classifier = classifier
        self.cache = cache
        self.thresholds = thresholds
        self._metrics = collector or metrics

    # =========================================================================
    # Entry Points
    # =========================================================================

    async def evaluate(
        self,
        title: str,
        summary: str,
        source: str,
        options: Optional[ModerationOptions] = None,
    ) -> ModerationVerdict:
        item = ContentItem(title=title or "", summary=summary or "", source=source or "")
        return await self.evaluate_text(item.text, options)

    async def evaluate_text(
        self,
        text: str,
        options: Optional[ModerationOptions] = None,
    ) -> ModerationVerdict:
        """
        Evaluate a raw text blob.

        Args:
            text: Combined content to moderate.
            options: Per-call knobs; defaults when omitted.

        Returns:
            The fused verdict.
        """
        options = options or ModerationOptions()

        if not text or not text.strip():
            self._metrics.increment(VERDICTS_BLOCKED)
            return ModerationVerdict.empty_content()

        key = f"{fingerprint(text)}:{options.signature}"
        cached = self._cached_verdict(key)
        if cached is not None:
            return cached

        with self._metrics.timer(EVALUATION_LATENCY):
            signal = await self._classify(text)
            verdict = self.fuse(text, signal, options)

        self._metrics.increment(VERDICTS_BLOCKED if verdict.is_blocked else VERDICTS_ALLOWED)

        if verdict.is_blocked:
            logger.info("Content Blocked", [
                ("Risk", verdict.risk_level.value),
                ("Reason", verdict.block_reason()[:100]),
            ])

        if self.cache is not None:
            self.cache.put(key, verdict.to_dict())
        return verdict

    async def _classify(self, text: str) -> ClassifierResult:
        try:
            return await self.classifier.classify(text)
        except Exception as e:
            logger.warning("Classifier Check Failed", [
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])
            return Unavailable(reason=CHECK_FAILED_REASON)

    def _cached_verdict(self, key: str) -> Optional[ModerationVerdict]:
        if self.cache is None:
            return None
        data = self.cache.get(key)
        if data is None:
            return None
        try:
            return ModerationVerdict.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding Unreadable Cached Verdict", [("Error", str(e)[:100])])
            self.cache.delete(key)
            return None

    # =========================================================================
    # Fusion
    # =========================================================================

    def fuse(
        self,
        text: str,
        signal: ClassifierResult,
        options: ModerationOptions,
    ) -> ModerationVerdict:
        """
        Combine a classifier outcome with the heuristic scans of text.

        Pure: no I/O, no cache access.
        """
        state = _Draft()

        if isinstance(signal, ClassifierScores):
            self._apply_scores(state, signal, options)
        else:
            self._apply_unavailable(state, signal, options)

        keywords = scan_keywords(text)
        if (
            keywords.found
            and isinstance(signal, ClassifierScores)
            and signal.any_above(self.thresholds.keyword_concurrence)
        ):
            state.categories.extend(keywords.categories)
            state.reasons.append(f"Contains sensitive keywords: {', '.join(keywords.categories)}")

        copyright_matches: List[str] = []
        if options.check_copyright:
            scan = scan_copyright(text)
            if scan.risk:
                copyright_matches = scan.matches
                state.categories.append("copyright")
                if state.risk_level.rank < RiskLevel.MEDIUM.rank:
                    state.risk_level = RiskLevel.MEDIUM

        confidence = state.confidence or UNAVAILABLE_CONFIDENCE
        if keywords.found and not isinstance(signal, ClassifierScores):
            confidence = KEYWORD_ONLY_CONFIDENCE

        return ModerationVerdict(
            is_safe=not state.is_blocked and state.risk_level != RiskLevel.PROHIBITED,
            is_blocked=state.is_blocked,
            risk_level=state.risk_level,
            categories=list(dict.fromkeys(state.categories)),
            reasons=state.reasons,
            copyright_risk=bool(copyright_matches),
            copyright_matches=copyright_matches or None,
            confidence=min(max(confidence, 0.0), 1.0),
        )

    def _apply_scores(self, state: "_Draft", scores: ClassifierScores, options: ModerationOptions) -> None:
        t = self.thresholds
        toxicity = scores.toxicity

        for axis in t.critical_axes:
            value = scores.score(axis)
            if value > t.critical:
                label = CRITICAL_LABELS.get(axis, axis.replace("_", " ").capitalize())
                state.block(axis, f"{label} detected ({round(value * 100)}%)", value)
                return

        if toxicity > t.high or any(scores.score(axis) > t.high for axis in t.critical_axes):
            state.risk_level = RiskLevel.HIGH
            state.categories.append("high_risk_content")
            state.reasons.append(f"High-risk content detected (toxicity: {round(toxicity * 100)}%)")
            state.confidence = max(toxicity, scores.score("severe_toxicity"), scores.score("threat"))
            if options.strict_mode and any(scores.score(axis) > t.strict for axis in t.strict_axes):
                state.is_blocked = True
                state.risk_level = RiskLevel.PROHIBITED
                state.reasons.append(STRICT_REASON)
            return

        if toxicity > t.moderate or any(scores.score(axis) > t.moderate for axis in t.moderate_axes):
            state.risk_level = RiskLevel.MEDIUM
            state.categories.append("moderate_risk")
            state.confidence = max(toxicity, scores.score("severe_toxicity"), scores.score("profanity"))
            return

        state.risk_level = RiskLevel.LOW
        state.confidence = 1 - max(toxicity, scores.score("severe_toxicity"))

    def _apply_unavailable(self, state: "_Draft", signal: Unavailable, options: ModerationOptions) -> None:
        if options.allow_unconfirmed:
            state.risk_level = RiskLevel.LOW
            state.reasons.append(UNCONFIRMED_REASON)
            return

        state.risk_level = RiskLevel.MEDIUM
        state.reasons.append(CHECK_FAILED_REASON if signal.reason == CHECK_FAILED_REASON else UNAVAILABLE_REASON)


class _Draft:
    """Mutable verdict under construction."""

    def __init__(self) -> None:
        self.risk_level = RiskLevel.LOW
        self.is_blocked = False
        self.categories: List[str] = []
        self.reasons: List[str] = []
        self.confidence: float = 0.0

    def block(self, category: str, reason: str, confidence: float) -> None:
        self.risk_level = RiskLevel.PROHIBITED
        self.is_blocked = True
        self.categories.append(category)
        self.reasons.append(reason)
        self.confidence = confidence


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "DecisionFuser",
    "Thresholds",
    "DEFAULT_THRESHOLDS",
    "Classifier",
    "UNAVAILABLE_REASON",
    "UNCONFIRMED_REASON",
    "CHECK_FAILED_REASON",
]
