"""
NewsGuard - Heuristic Scanners
==============================

Local, deterministic checks that annotate a verdict but never block.

DESIGN:
    Keyword hits are common in legitimate reporting ("shooting",
    "terrorism"), so the fuser only merges them when the classifier
    agrees. Copyright patterns raise the risk level to medium at most.
    Everything here is a pure function: no I/O, no awaits.
"""

import re
from typing import Dict, List, Optional, Pattern, Tuple

from newsguard.services.moderation.models import CopyrightScan, KeywordScan


# =============================================================================
# Keyword Categories
# =============================================================================

KEYWORD_CATEGORIES: Dict[str, Tuple[str, ...]] = {
    "violence": (
        "murder", "homicide", "killing", "assassination", "execution",
        "shooting", "gunfire", "massacre", "genocide", "torture",
        "beheading", "decapitation", "lynching", "terrorism", "terrorist",
        "bombing", "explosion", "attack", "mass shooting", "mass casualty",
        "war crime", "atrocity",
    ),
    "sexual": (
        "sexual assault", "rape", "molestation", "pedophilia", "child abuse",
        "sexual exploitation", "trafficking", "prostitution", "pornography",
        "explicit", "graphic sexual",
    ),
    "self_harm": (
        "suicide", "self-harm", "self harm", "self-injury", "cutting",
        "overdose", "eating disorder",
    ),
    "hate_speech": (
        "hate crime", "racism", "antisemitism", "islamophobia", "xenophobia",
        "homophobia", "transphobia", "slur", "extremist", "neo-nazi",
        "white supremacy",
    ),
    "minors": ("minor", "child abuse", "underage", "juvenile"),
    "graphic": (
        "gore", "graphic violence", "blood", "mutilation", "corpse",
        "dead body", "cadaver",
    ),
}


# =============================================================================
# Copyright Patterns
# =============================================================================

COPYRIGHT_PATTERNS: List[Pattern[str]] = [
    re.compile(r"copyright.{0,20}(infringement|violation|breach)", re.IGNORECASE),
    re.compile(r"unauthorized.{0,20}(reproduction|copy|distribution|use)", re.IGNORECASE),
    re.compile(r"plagiarism|plagiarized|plagiarised", re.IGNORECASE),
    re.compile(r"pirated|bootleg|counterfeit", re.IGNORECASE),
    re.compile(r"dmca.{0,20}(notice|takedown|violation)", re.IGNORECASE),
]

NEAR_DUPLICATE_MATCH = "near-duplicate of reference text"

SIMILARITY_MIN_LENGTH = 50
SIMILARITY_THRESHOLD = 0.8


# =============================================================================
# Scanners
# =============================================================================

def scan_keywords(text: str) -> KeywordScan:
    """
    Categorize text by case-insensitive keyword substrings.

    Returns:
        KeywordScan with categories in a fixed order.
    """
    normalized = text.lower()
    categories = [
        category
        for category, keywords in KEYWORD_CATEGORIES.items()
        if any(keyword in normalized for keyword in keywords)
    ]
    return KeywordScan(found=bool(categories), categories=categories)


def scan_copyright(text: str, reference: Optional[str] = None) -> CopyrightScan:
    """
    Match copyright and plagiarism phrases.

    Args:
        text: Content to scan.
        reference: Optional known source text; a near-duplicate of it
            counts as a match too.

    Returns:
        CopyrightScan listing the first match of each pattern.
    """
    matches = []
    for pattern in COPYRIGHT_PATTERNS:
        match = pattern.search(text)
        if match:
            matches.append(match.group(0))

    if reference is not None and is_similar(text, reference):
        matches.append(NEAR_DUPLICATE_MATCH)

    return CopyrightScan(risk=bool(matches), matches=matches)


# =============================================================================
# Similarity
# =============================================================================

def _significant_words(text: str) -> set:
    return {word for word in text.lower().split() if len(word) > 3}


def text_similarity(first: str, second: str) -> float:
    """
    Jaccard similarity of the words longer than three characters.

    Texts under 50 characters are too short to compare and score 0.0.
    """
    if not first or not second:
        return 0.0
    if len(first) < SIMILARITY_MIN_LENGTH or len(second) < SIMILARITY_MIN_LENGTH:
        return 0.0

    words_a = _significant_words(first)
    words_b = _significant_words(second)
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def is_similar(first: str, second: str, threshold: float = SIMILARITY_THRESHOLD) -> bool:
    return text_similarity(first, second) >= threshold


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "scan_keywords",
    "scan_copyright",
    "text_similarity",
    "is_similar",
    "KEYWORD_CATEGORIES",
    "COPYRIGHT_PATTERNS",
    "NEAR_DUPLICATE_MATCH",
]
