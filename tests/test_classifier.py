"""
NewsGuard - Classifier Client Tests
===================================

Tests for the quota-gated classifier client. The HTTP call is replaced
by patching ClassifierClient._post.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import aiohttp
import pytest

from newsguard.services.moderation.cache import CLASSIFIER_NAMESPACE, ResultCache
from newsguard.services.moderation.classifier import REQUESTED_ATTRIBUTES, ClassifierClient, parse_scores
from newsguard.services.moderation.models import ClassifierScores, Unavailable
from newsguard.services.moderation.quota import QuotaLimiter
from newsguard.utils.metrics import CLASSIFIER_RATE_LIMITED, QUOTA_TIMEOUTS


TEXT = "Local bakery wins regional award for its sourdough bread"


def analyze_body(**scores: float) -> str:
    """Analyze-endpoint response body with the given summary scores."""
    return json.dumps({
        "attributeScores": {
            name.upper(): {"summaryScore": {"value": value, "type": "PROBABILITY"}}
            for name, value in scores.items()
        },
        "languages": ["en"],
    })


@pytest.fixture
def limiter():
    return QuotaLimiter(limit=10, window_seconds=60)


@pytest.fixture
def make_client(limiter, collector):
    def factory(api_key="test-key", **kwargs):
        kwargs.setdefault("cache", ResultCache(CLASSIFIER_NAMESPACE, ttl_seconds=60, collector=collector))
        kwargs.setdefault("quota_wait", 0.0)
        return ClassifierClient(api_key, limiter, collector=collector, **kwargs)
    return factory


# =============================================================================
# Short-Circuits
# =============================================================================

class TestClassifierShortCircuits:
    """Tests for checks that run before any request."""

    @pytest.mark.asyncio
    async def test_missing_key_is_unavailable(self, make_client, limiter):
        """Test that no credential means no request and no quota use."""
        client = make_client(api_key=None)
        client._post = AsyncMock()

        result = await client.classify(TEXT)

        assert isinstance(result, Unavailable)
        assert client.enabled is False
        client._post.assert_not_called()
        assert limiter.usage().used == 0

    @pytest.mark.asyncio
    async def test_short_text_is_unavailable(self, make_client, limiter):
        """Test that texts under the minimum length are not sent."""
        client = make_client()
        client._post = AsyncMock()

        result = await client.classify("too short")

        assert isinstance(result, Unavailable)
        client._post.assert_not_called()
        assert limiter.usage().used == 0


# =============================================================================
# Successful Requests
# =============================================================================

class TestClassifierSuccess:
    """Tests for well-formed classifier answers."""

    @pytest.mark.asyncio
    async def test_scores_are_parsed(self, make_client, limiter):
        """Test that category scores are lower-cased and toxicity is the maximum."""
        client = make_client()
        client._post = AsyncMock(return_value=(200, analyze_body(toxicity=0.2, threat=0.7, insult=0.1)))

        result = await client.classify(TEXT)

        assert isinstance(result, ClassifierScores)
        assert result.toxicity == 0.7
        assert result.score("threat") == 0.7
        assert result.score("insult") == 0.1
        assert limiter.usage().used == 1

    @pytest.mark.asyncio
    async def test_cached_result_costs_no_quota(self, make_client, limiter):
        """Test that a repeat text is answered from the cache."""
        client = make_client()
        client._post = AsyncMock(return_value=(200, analyze_body(toxicity=0.2)))

        first = await client.classify(TEXT)
        second = await client.classify(TEXT.upper() + "  ")

        assert first == second
        assert client._post.await_count == 1
        assert limiter.usage().used == 1

    @pytest.mark.asyncio
    async def test_payload_requests_every_attribute(self, make_client):
        """Test the analyze request body."""
        client = make_client()
        client._post = AsyncMock(return_value=(200, analyze_body(toxicity=0.1)))

        await client.classify(TEXT)

        payload = client._post.await_args.args[0]
        assert payload["comment"]["text"] == TEXT
        assert set(payload["requestedAttributes"]) == set(REQUESTED_ATTRIBUTES)
        assert payload["doNotStore"] is True


# =============================================================================
# Failures
# =============================================================================

class TestClassifierFailures:
    """Tests for every way the classifier can fail to answer."""

    @pytest.mark.asyncio
    async def test_rate_limited(self, make_client, collector):
        """Test that HTTP 429 becomes Unavailable."""
        client = make_client()
        client._post = AsyncMock(return_value=(429, "Too Many Requests"))

        result = await client.classify(TEXT)

        assert isinstance(result, Unavailable)
        assert "429" in result.reason
        assert collector.get_counter(CLASSIFIER_RATE_LIMITED) == 1

    @pytest.mark.asyncio
    async def test_server_error(self, make_client):
        """Test that a non-2xx status becomes Unavailable."""
        client = make_client()
        client._post = AsyncMock(return_value=(500, "boom"))

        result = await client.classify(TEXT)

        assert isinstance(result, Unavailable)
        assert "500" in result.reason

    @pytest.mark.asyncio
    async def test_malformed_body(self, make_client):
        """Test that an unparseable body becomes Unavailable."""
        client = make_client()
        client._post = AsyncMock(return_value=(200, "<html>not json</html>"))

        assert isinstance(await client.classify(TEXT), Unavailable)

    @pytest.mark.asyncio
    async def test_transport_error(self, make_client):
        """Test that a connection failure becomes Unavailable."""
        client = make_client()
        client._post = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))

        result = await client.classify(TEXT)

        assert isinstance(result, Unavailable)
        assert "ClientConnectionError" in result.reason

    @pytest.mark.asyncio
    async def test_request_timeout(self, make_client):
        """Test that a request timeout becomes Unavailable."""
        client = make_client()
        client._post = AsyncMock(side_effect=asyncio.TimeoutError())

        assert isinstance(await client.classify(TEXT), Unavailable)

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, make_client):
        """Test that an outage is retried on the next call."""
        client = make_client()
        client._post = AsyncMock(side_effect=[(500, "boom"), (200, analyze_body(toxicity=0.1))])

        assert isinstance(await client.classify(TEXT), Unavailable)
        assert isinstance(await client.classify(TEXT), ClassifierScores)

    @pytest.mark.asyncio
    async def test_quota_exhausted(self, collector):
        """Test that a caller who cannot get a permit in time gets Unavailable."""
        limiter = QuotaLimiter(limit=1, window_seconds=60)
        client = ClassifierClient("test-key", limiter, quota_wait=0.05, collector=collector)
        client._post = AsyncMock(return_value=(200, analyze_body(toxicity=0.1)))

        await client.classify(TEXT)
        result = await client.classify(TEXT + " and a follow-up")

        assert isinstance(result, Unavailable)
        assert "quota" in result.reason
        assert client._post.await_count == 1
        assert collector.get_counter(QUOTA_TIMEOUTS) == 1


# =============================================================================
# Response Parsing
# =============================================================================

class TestParseScores:
    """Tests for analyze response parsing."""

    def test_span_score_fallback(self):
        """Test that a missing summary score falls back to the first span."""
        scores = parse_scores({
            "attributeScores": {
                "TOXICITY": {"spanScores": [{"score": {"value": 0.4}}]},
            },
        })

        assert scores.score("toxicity") == 0.4

    def test_missing_score_defaults_to_zero(self):
        """Test that an attribute without any score counts as 0."""
        scores = parse_scores({"attributeScores": {"INSULT": {}, "THREAT": {"summaryScore": {"value": 0.2}}}})

        assert scores.score("insult") == 0.0
        assert scores.toxicity == 0.2

    def test_missing_attribute_scores_raises(self):
        """Test that a body without attributeScores is rejected."""
        with pytest.raises(ValueError):
            parse_scores({"languages": ["en"]})

    def test_out_of_range_raises(self):
        """Test that a score above 1 is rejected."""
        with pytest.raises(ValueError):
            parse_scores({"attributeScores": {"TOXICITY": {"summaryScore": {"value": 1.5}}}})
