"""
NewsGuard - Decision Fuser Tests
================================

Tests for turning classifier scores and heuristics into verdicts.
"""

import pytest

from newsguard.services.moderation.fuser import (
    CHECK_FAILED_REASON,
    STRICT_REASON,
    UNAVAILABLE_REASON,
    DecisionFuser,
    UNCONFIRMED_REASON,
    Thresholds,
)
from newsguard.services.moderation.models import EMPTY_REASON, ModerationOptions, RiskLevel

from conftest import FailingClassifier, StubClassifier, UnavailableClassifier, make_scores


NEUTRAL = "City council approves new budget for parks and libraries"
VIOLENT = "Police investigate shooting and bombing downtown"
PIRATED = "Publisher files DMCA takedown notice over pirated footage"


# =============================================================================
# Empty Content
# =============================================================================

class TestEmptyContent:
    """Tests for content with nothing to evaluate."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title,summary,source", [("", "", ""), ("   ", "\n", " ")])
    async def test_empty_is_blocked(self, make_fuser, title, summary, source):
        """Test that empty or whitespace-only items are prohibited without a classifier call."""
        classifier = StubClassifier()
        fuser = make_fuser(classifier)

        verdict = await fuser.evaluate(title, summary, source)

        assert verdict.is_blocked is True
        assert verdict.is_safe is False
        assert verdict.risk_level == RiskLevel.PROHIBITED
        assert verdict.categories == ["empty"]
        assert verdict.reasons == [EMPTY_REASON]
        assert verdict.confidence == 1.0
        assert classifier.calls == 0


# =============================================================================
# Classifier Tiers
# =============================================================================

class TestClassifierTiers:
    """Tests for the critical / high / moderate / low thresholds."""

    @pytest.mark.asyncio
    async def test_critical_blocks(self, make_fuser):
        """Test that a critical axis above 0.85 blocks."""
        fuser = make_fuser(StubClassifier(make_scores(severe_toxicity=0.9)))

        verdict = await fuser.evaluate_text(NEUTRAL)

        assert verdict.is_blocked is True
        assert verdict.is_safe is False
        assert verdict.risk_level == RiskLevel.PROHIBITED
        assert verdict.categories == ["severe_toxicity"]
        assert verdict.reasons == ["Severe toxicity detected (90%)"]
        assert verdict.confidence == pytest.approx(0.9)
        assert verdict.block_reason() == "Severe toxicity detected (90%) (Categories: severe_toxicity)"

    @pytest.mark.asyncio
    async def test_only_first_critical_axis_recorded(self, make_fuser):
        """Test that the first triggering axis in order is the one reported."""
        fuser = make_fuser(StubClassifier(make_scores(threat=0.95, identity_attack=0.9)))

        verdict = await fuser.evaluate_text(NEUTRAL)

        assert verdict.categories == ["threat"]
        assert verdict.reasons == ["Threat detected (95%)"]

    @pytest.mark.asyncio
    async def test_critical_threshold_is_exclusive(self, make_fuser):
        """Test that a score of exactly 0.85 does not block."""
        fuser = make_fuser(StubClassifier(make_scores(threat=0.85)))

        verdict = await fuser.evaluate_text(NEUTRAL)

        assert verdict.is_blocked is False
        assert verdict.risk_level == RiskLevel.HIGH

    @pytest.mark.asyncio
    async def test_high_risk_is_flagged_not_blocked(self, make_fuser):
        """Test that toxicity above 0.75 is high risk but still safe."""
        fuser = make_fuser(StubClassifier(make_scores(toxicity=0.8)))

        verdict = await fuser.evaluate_text(NEUTRAL)

        assert verdict.is_blocked is False
        assert verdict.is_safe is True
        assert verdict.risk_level == RiskLevel.HIGH
        assert verdict.categories == ["high_risk_content"]
        assert verdict.reasons == ["High-risk content detected (toxicity: 80%)"]
        assert verdict.confidence == pytest.approx(0.8)

    @pytest.mark.asyncio
    async def test_moderate_axis(self, make_fuser):
        """Test that profanity above 0.6 is medium risk."""
        fuser = make_fuser(StubClassifier(make_scores(toxicity=0.3, profanity=0.65)))

        verdict = await fuser.evaluate_text(NEUTRAL)

        assert verdict.risk_level == RiskLevel.MEDIUM
        assert verdict.categories == ["moderate_risk"]
        assert verdict.is_safe is True
        assert verdict.confidence == pytest.approx(0.65)

    @pytest.mark.asyncio
    async def test_low_risk(self, make_fuser):
        """Test that low scores give a confident low verdict."""
        fuser = make_fuser(StubClassifier(make_scores(toxicity=0.1)))

        verdict = await fuser.evaluate_text(NEUTRAL)

        assert verdict.risk_level == RiskLevel.LOW
        assert verdict.is_safe is True
        assert verdict.reasons == []
        assert verdict.confidence == pytest.approx(0.9)


# =============================================================================
# Strict Mode
# =============================================================================

class TestStrictMode:
    """Tests for strict-mode escalation."""

    @pytest.mark.asyncio
    async def test_strict_blocks_high_risk_with_severe_axis(self, make_fuser):
        """Test that strict mode blocks high risk when a strict axis concurs."""
        fuser = make_fuser(StubClassifier(make_scores(toxicity=0.8, threat=0.8)))

        verdict = await fuser.evaluate_text(NEUTRAL, ModerationOptions(strict_mode=True))

        assert verdict.is_blocked is True
        assert verdict.risk_level == RiskLevel.PROHIBITED
        assert verdict.reasons[-1] == STRICT_REASON

    @pytest.mark.asyncio
    async def test_lenient_mode_does_not_block_same_scores(self, make_fuser):
        """Test that the same scores are only flagged without strict mode."""
        fuser = make_fuser(StubClassifier(make_scores(toxicity=0.8, threat=0.8)))

        verdict = await fuser.evaluate_text(NEUTRAL)

        assert verdict.is_blocked is False
        assert verdict.risk_level == RiskLevel.HIGH

    @pytest.mark.asyncio
    async def test_strict_needs_a_strict_axis(self, make_fuser):
        """Test that plain toxicity alone is not escalated."""
        fuser = make_fuser(StubClassifier(make_scores(toxicity=0.8, insult=0.8)))

        verdict = await fuser.evaluate_text(NEUTRAL, ModerationOptions(strict_mode=True))

        assert verdict.is_blocked is False

    @pytest.mark.asyncio
    async def test_thresholds_are_configurable(self, collector):
        """Test that a custom policy changes the strict cutoff."""
        fuser = DecisionFuser(
            StubClassifier(make_scores(toxicity=0.8, threat=0.78)),
            thresholds=Thresholds(strict=0.8),
            collector=collector,
        )

        verdict = await fuser.evaluate_text(NEUTRAL, ModerationOptions(strict_mode=True))

        assert verdict.is_blocked is False


# =============================================================================
# Classifier Unavailable
# =============================================================================

class TestFailOpen:
    """Tests for verdicts without a classifier answer."""

    @pytest.mark.asyncio
    async def test_unavailable_is_flagged_never_blocked(self, make_fuser):
        """Test that an outage yields medium risk and a safe verdict."""
        fuser = make_fuser(UnavailableClassifier())

        verdict = await fuser.evaluate_text(NEUTRAL)

        assert verdict.is_blocked is False
        assert verdict.is_safe is True
        assert verdict.risk_level == RiskLevel.MEDIUM
        assert verdict.reasons == [UNAVAILABLE_REASON]
        assert verdict.confidence == 0.5

    @pytest.mark.asyncio
    async def test_allow_unconfirmed(self, make_fuser):
        """Test that callers can opt into low risk during outages."""
        fuser = make_fuser(UnavailableClassifier())

        verdict = await fuser.evaluate_text(NEUTRAL, ModerationOptions(allow_unconfirmed=True))

        assert verdict.risk_level == RiskLevel.LOW
        assert verdict.reasons == [UNCONFIRMED_REASON]
        assert verdict.is_blocked is False

    @pytest.mark.asyncio
    async def test_raising_classifier(self, make_fuser):
        """Test that an exception from the classifier is contained."""
        fuser = make_fuser(FailingClassifier())

        verdict = await fuser.evaluate_text(NEUTRAL)

        assert verdict.is_blocked is False
        assert verdict.risk_level == RiskLevel.MEDIUM
        assert verdict.reasons == [CHECK_FAILED_REASON]


# =============================================================================
# Keywords
# =============================================================================

class TestKeywordFusion:
    """Tests for merging keyword hits."""

    @pytest.mark.asyncio
    async def test_keywords_alone_never_block(self, make_fuser):
        """Test that keyword hits without classifier scores only lower confidence."""
        fuser = make_fuser(UnavailableClassifier())

        verdict = await fuser.evaluate_text(VIOLENT)

        assert verdict.is_blocked is False
        assert "violence" not in verdict.categories
        assert verdict.confidence == pytest.approx(0.3)

    @pytest.mark.asyncio
    async def test_keywords_ignored_when_classifier_disagrees(self, make_fuser):
        """Test that low classifier scores keep keyword hits out of the verdict."""
        fuser = make_fuser(StubClassifier(make_scores(toxicity=0.2)))

        verdict = await fuser.evaluate_text(VIOLENT)

        assert verdict.categories == []
        assert verdict.risk_level == RiskLevel.LOW

    @pytest.mark.asyncio
    async def test_keywords_merged_when_classifier_concurs(self, make_fuser):
        """Test that a score above 0.5 admits the keyword categories."""
        fuser = make_fuser(StubClassifier(make_scores(toxicity=0.55)))

        verdict = await fuser.evaluate_text(VIOLENT)

        assert verdict.categories == ["violence"]
        assert verdict.reasons == ["Contains sensitive keywords: violence"]
        assert verdict.is_blocked is False

    @pytest.mark.asyncio
    async def test_all_annotations_combine(self, make_fuser):
        """Test that tier, keyword and copyright categories accumulate in order."""
        fuser = make_fuser(StubClassifier(make_scores(toxicity=0.8)))

        verdict = await fuser.evaluate_text(VIOLENT + " captured in pirated footage")

        assert verdict.categories == ["high_risk_content", "violence", "copyright"]
        assert verdict.risk_level == RiskLevel.HIGH
        assert verdict.is_blocked is False


# =============================================================================
# Copyright
# =============================================================================

class TestCopyrightFusion:
    """Tests for copyright annotation."""

    @pytest.mark.asyncio
    async def test_copyright_raises_low_to_medium(self, make_fuser):
        """Test that a copyright match annotates and bumps low risk."""
        fuser = make_fuser(StubClassifier(make_scores(toxicity=0.1)))

        verdict = await fuser.evaluate_text(PIRATED)

        assert verdict.copyright_risk is True
        assert "pirated" in verdict.copyright_matches
        assert verdict.categories == ["copyright"]
        assert verdict.risk_level == RiskLevel.MEDIUM
        assert verdict.reasons == []
        assert verdict.is_blocked is False

    @pytest.mark.asyncio
    async def test_copyright_check_can_be_disabled(self, make_fuser):
        """Test the check_copyright option."""
        fuser = make_fuser(StubClassifier(make_scores(toxicity=0.1)))

        verdict = await fuser.evaluate_text(PIRATED, ModerationOptions(check_copyright=False))

        assert verdict.copyright_risk is False
        assert verdict.copyright_matches is None
        assert verdict.risk_level == RiskLevel.LOW

    @pytest.mark.asyncio
    async def test_copyright_keeps_higher_risk(self, make_fuser):
        """Test that a copyright match never lowers an existing risk level."""
        fuser = make_fuser(StubClassifier(make_scores(toxicity=0.8)))

        verdict = await fuser.evaluate_text(PIRATED)

        assert verdict.copyright_risk is True
        assert verdict.risk_level == RiskLevel.HIGH


# =============================================================================
# Verdict Cache
# =============================================================================

class TestVerdictCaching:
    """Tests for verdict reuse."""

    @pytest.mark.asyncio
    async def test_repeat_evaluation_is_cached(self, make_fuser):
        """Test that the same text and options reach the classifier once."""
        classifier = StubClassifier(make_scores(toxicity=0.8))
        fuser = make_fuser(classifier)

        first = await fuser.evaluate_text(NEUTRAL)
        second = await fuser.evaluate_text(NEUTRAL)

        assert first == second
        assert classifier.calls == 1

    @pytest.mark.asyncio
    async def test_options_key_separately(self, make_fuser):
        """Test that a different option set is evaluated on its own."""
        classifier = StubClassifier(make_scores(toxicity=0.8, threat=0.8))
        fuser = make_fuser(classifier)

        lenient = await fuser.evaluate_text(NEUTRAL)
        strict = await fuser.evaluate_text(NEUTRAL, ModerationOptions(strict_mode=True))

        assert classifier.calls == 2
        assert lenient.is_blocked is False
        assert strict.is_blocked is True

    @pytest.mark.asyncio
    async def test_outage_verdict_is_cached(self, make_fuser):
        """Test that a flagged-for-review verdict is reused within the TTL."""
        classifier = UnavailableClassifier()
        fuser = make_fuser(classifier)

        first = await fuser.evaluate("Factory fire kills 3 workers", "", "Reuters")
        second = await fuser.evaluate("Factory fire kills 3 workers", "", "Reuters")

        assert classifier.calls == 1
        assert second == first
        assert second.risk_level == RiskLevel.MEDIUM

    @pytest.mark.asyncio
    async def test_cache_shared_between_fusers(self, make_fuser):
        """Test that a second fuser on the same cache reuses the verdict."""
        await make_fuser(StubClassifier(make_scores(toxicity=0.1))).evaluate_text(NEUTRAL)

        classifier = StubClassifier(make_scores(severe_toxicity=0.99))
        verdict = await make_fuser(classifier).evaluate_text(NEUTRAL)

        assert classifier.calls == 0
        assert verdict.risk_level == RiskLevel.LOW
