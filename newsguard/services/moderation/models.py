"""
NewsGuard - Moderation Models
=============================

Data types shared by every stage of the moderation pipeline.

DESIGN:
    Expected failures are values, not exceptions: the classifier returns
    ClassifierScores or Unavailable, the quota limiter returns Permit or
    TimedOut. Callers branch with isinstance and never need try/except
    for the normal "service is down" path.

    ModerationVerdict round-trips through to_dict()/from_dict() so it can
    live in the result cache and travel over the HTTP API unchanged.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


# =============================================================================
# Constants
# =============================================================================

PLACEHOLDER_CONFIDENCE = 0.3
"""Confidence given to verdicts that were assumed rather than computed."""

TIMEOUT_REASON = "Timeout - assumed safe"
EMPTY_REASON = "Empty content"
GENERIC_BLOCK_MESSAGE = "Content does not meet our safety standards."


# =============================================================================
# Risk Level
# =============================================================================

class RiskLevel(str, Enum):
    """Ordered severity of a verdict. Only PROHIBITED blocks by default."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    PROHIBITED = "prohibited"

    @property
    def rank(self) -> int:
        return _RISK_ORDER.index(self)


_RISK_ORDER = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.PROHIBITED]


# =============================================================================
# Inputs
# =============================================================================

def fingerprint(text: str) -> str:
    """
    Cache key for a text blob.

    Case and surrounding whitespace do not change the key.
    """
    return hashlib.sha256(text.lower().strip().encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ContentItem:
    """One aggregated news item."""

    title: str = ""
    summary: str = ""
    source: str = ""

    @property
    def text(self) -> str:
        return f"{self.title}\n{self.summary}\n{self.source}".strip()


@dataclass(frozen=True)
class ModerationOptions:
    """
    Per-call knobs.

    Attributes:
        check_copyright: Run the copyright pattern scan.
        strict_mode: Escalate high risk to blocked when a severe axis concurs.
        allow_unconfirmed: Treat "classifier unavailable" as low risk
            instead of flagging it as medium. Never blocks either way.
    """

    check_copyright: bool = True
    strict_mode: bool = False
    allow_unconfirmed: bool = False

    @property
    def signature(self) -> str:
        """Short stable token used to key verdicts per option set."""
        return "".join("1" if flag else "0" for flag in (
            self.check_copyright, self.strict_mode, self.allow_unconfirmed,
        ))


# =============================================================================
# Classifier Outcomes
# =============================================================================

@dataclass
class ClassifierScores:
    """Per-category scores in [0, 1] plus the overall maximum."""

    toxicity: float
    categories: Dict[str, float] = field(default_factory=dict)

    def score(self, name: str) -> float:
        return self.categories.get(name, 0.0)

    def any_above(self, threshold: float) -> bool:
        return self.toxicity > threshold or any(v > threshold for v in self.categories.values())

    def to_dict(self) -> Dict[str, Any]:
        return {"toxicity": self.toxicity, "categories": dict(self.categories)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ClassifierScores:
        return cls(
            toxicity=float(data["toxicity"]),
            categories={str(k): float(v) for k, v in data.get("categories", {}).items()},
        )


@dataclass
class Unavailable:
    """The classifier produced no signal."""

    reason: str


ClassifierResult = Union[ClassifierScores, Unavailable]


# =============================================================================
# Quota Outcomes
# =============================================================================

@dataclass
class Permit:
    """A quota slot was granted."""

    granted_at: float
    waited: float = 0.0


@dataclass
class TimedOut:
    """No slot freed up within the caller's patience."""

    waited: float


AcquireResult = Union[Permit, TimedOut]


@dataclass
class QuotaUsage:
    used: int
    limit: int
    percentage: float
    queue_length: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "used": self.used,
            "limit": self.limit,
            "percentage": round(self.percentage, 2),
            "queue_length": self.queue_length,
        }


# =============================================================================
# Heuristic Outcomes
# =============================================================================

@dataclass
class KeywordScan:
    found: bool
    categories: List[str] = field(default_factory=list)


@dataclass
class CopyrightScan:
    risk: bool
    matches: List[str] = field(default_factory=list)


# =============================================================================
# Verdict
# =============================================================================

@dataclass
class ModerationVerdict:
    """
    Final decision for one content item.

    is_blocked implies not is_safe. A medium or high verdict is flagged
    but still safe to show.
    """

    is_safe: bool
    is_blocked: bool
    risk_level: RiskLevel
    categories: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)
    copyright_risk: bool = False
    copyright_matches: Optional[List[str]] = None
    confidence: float = 0.5

    def should_block(self) -> bool:
        return self.is_blocked or self.risk_level == RiskLevel.PROHIBITED

    def block_reason(self) -> str:
        """Human-readable reason: the leading reason plus its categories."""
        if not self.reasons:
            return GENERIC_BLOCK_MESSAGE
        suffix = f" (Categories: {', '.join(self.categories)})" if self.categories else ""
        return f"{self.reasons[0]}{suffix}"

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def assumed_safe(cls, reason: str = TIMEOUT_REASON) -> ModerationVerdict:
        """Placeholder for items that could not be evaluated in time."""
        return cls(
            is_safe=True,
            is_blocked=False,
            risk_level=RiskLevel.LOW,
            reasons=[reason],
            confidence=PLACEHOLDER_CONFIDENCE,
        )

    @classmethod
    def empty_content(cls) -> ModerationVerdict:
        return cls(
            is_safe=False,
            is_blocked=True,
            risk_level=RiskLevel.PROHIBITED,
            categories=["empty"],
            reasons=[EMPTY_REASON],
            confidence=1.0,
        )

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the cache and the HTTP API."""
        return {
            "is_safe": self.is_safe,
            "is_blocked": self.is_blocked,
            "risk_level": self.risk_level.value,
            "categories": list(self.categories),
            "reasons": list(self.reasons),
            "copyright_risk": self.copyright_risk,
            "copyright_matches": list(self.copyright_matches) if self.copyright_matches else None,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ModerationVerdict:
        matches = data.get("copyright_matches")
        return cls(
            is_safe=bool(data["is_safe"]),
            is_blocked=bool(data["is_blocked"]),
            risk_level=RiskLevel(data["risk_level"]),
            categories=list(data.get("categories", [])),
            reasons=list(data.get("reasons", [])),
            copyright_risk=bool(data.get("copyright_risk", False)),
            copyright_matches=list(matches) if matches else None,
            confidence=float(data.get("confidence", 0.5)),
        )


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "RiskLevel",
    "fingerprint",
    "ContentItem",
    "ModerationOptions",
    "ClassifierScores",
    "Unavailable",
    "ClassifierResult",
    "Permit",
    "TimedOut",
    "AcquireResult",
    "QuotaUsage",
    "KeywordScan",
    "CopyrightScan",
    "ModerationVerdict",
    "PLACEHOLDER_CONFIDENCE",
    "TIMEOUT_REASON",
    "EMPTY_REASON",
    "GENERIC_BLOCK_MESSAGE",
]
