"""
NewsGuard - Test Fixtures
=========================

Shared fixtures for all tests.

Classifiers are replaced by small stub classes; nothing here touches
the network.
"""

import asyncio
import os
import tempfile

# Send log files to a throwaway directory before the logger is imported
os.environ.setdefault("NEWSGUARD_LOGS_DIR", tempfile.mkdtemp(prefix="newsguard-logs-"))

import pytest

from newsguard.core.config import Config
from newsguard.core.database import DatabaseManager
from newsguard.services.moderation.cache import ResultCache, VERDICT_NAMESPACE
from newsguard.services.moderation.fuser import DecisionFuser
from newsguard.services.moderation.models import ClassifierScores, Unavailable
from newsguard.services.moderation.service import ModerationService
from newsguard.utils.metrics import MetricsCollector


# =============================================================================
# Stub Classifiers
# =============================================================================

def make_scores(**categories: float) -> ClassifierScores:
    """Scores with toxicity set to the highest category, as the client does."""
    categories.setdefault("toxicity", 0.0)
    return ClassifierScores(toxicity=max(categories.values()), categories=dict(categories))


class StubClassifier:
    """Returns a fixed result and counts calls."""

    def __init__(self, result=None):
        self.result = result if result is not None else make_scores()
        self.calls = 0
        self.texts = []

    async def classify(self, text):
        self.calls += 1
        self.texts.append(text)
        return self.result


class UnavailableClassifier(StubClassifier):
    """Always reports the classifier as down."""

    def __init__(self, reason="service down"):
        super().__init__(Unavailable(reason=reason))


class StallingClassifier(StubClassifier):
    """Never answers."""

    async def classify(self, text):
        self.calls += 1
        await asyncio.Event().wait()


class FailingClassifier(StubClassifier):
    """Raises instead of returning a tagged outcome."""

    async def classify(self, text):
        self.calls += 1
        raise RuntimeError("classifier exploded")


# =============================================================================
# Core Fixtures
# =============================================================================

@pytest.fixture
def temp_db_path(tmp_path):
    """Temporary database path for testing."""
    return tmp_path / "moderation_cache.db"


@pytest.fixture
def test_db(temp_db_path):
    """Fresh database manager on a temporary file."""
    db = DatabaseManager(temp_db_path)
    yield db
    db.close()


@pytest.fixture
def collector():
    """Isolated metrics collector."""
    return MetricsCollector()


@pytest.fixture
def test_config():
    """Memory-only config with short deadlines."""
    return Config(
        perspective_api_key=None,
        cache_db_path=None,
        item_timeout=1.0,
        batch_timeout=3.0,
        batch_concurrency=5,
        pacing_delay=0.0,
    )


# =============================================================================
# Moderation Fixtures
# =============================================================================

@pytest.fixture
def verdict_cache(collector):
    return ResultCache(VERDICT_NAMESPACE, ttl_seconds=3600, collector=collector)


@pytest.fixture
def make_fuser(verdict_cache, collector):
    """Factory for a fuser around a given classifier, sharing one cache."""
    def factory(classifier, cache=verdict_cache):
        return DecisionFuser(classifier, cache=cache, collector=collector)
    return factory


@pytest.fixture
def make_service(test_config, collector):
    """Factory for a service around a given classifier."""
    services = []

    def factory(classifier, config=test_config, db=None):
        service = ModerationService(config=config, classifier=classifier, db=db, collector=collector)
        services.append(service)
        return service

    return factory
