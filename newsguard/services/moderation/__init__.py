"""
NewsGuard - Moderation Package
==============================

Rate-limited content moderation for aggregated news items.

Structure:
    models.py      Verdicts, options and tagged outcomes
    cache.py       Two-tier result cache (memory + sqlite)
    quota.py       Sliding-window quota limiter
    classifier.py  Perspective-compatible classifier client
    heuristics.py  Keyword and copyright scanners
    fuser.py       Tiered decision algorithm
    batch.py       Deadline-bounded batch evaluation
    service.py     Public facade
"""

from .models import (
    ClassifierScores,
    ContentItem,
    ModerationOptions,
    ModerationVerdict,
    Permit,
    QuotaUsage,
    RiskLevel,
    TimedOut,
    Unavailable,
    fingerprint,
)
from .cache import ResultCache
from .quota import QuotaLimiter
from .classifier import ClassifierClient
from .heuristics import scan_copyright, scan_keywords, text_similarity, is_similar
from .fuser import DecisionFuser, Thresholds
from .batch import BatchEvaluator
from .service import ModerationService, create_moderation_service


__all__ = [
    "ClassifierScores",
    "ContentItem",
    "ModerationOptions",
    "ModerationVerdict",
    "Permit",
    "QuotaUsage",
    "RiskLevel",
    "TimedOut",
    "Unavailable",
    "fingerprint",
    "ResultCache",
    "QuotaLimiter",
    "ClassifierClient",
    "scan_copyright",
    "scan_keywords",
    "text_similarity",
    "is_similar",
    "DecisionFuser",
    "Thresholds",
    "BatchEvaluator",
    "ModerationService",
    "create_moderation_service",
]
