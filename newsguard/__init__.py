"""
NewsGuard - Source Package
==========================

Rate-limited content moderation engine for a news aggregator.

Package Structure:
- core/: Configuration, logging and the SQLite store
- services/moderation/: Classifier, heuristics, decision fusion, batching
- api/: FastAPI surface over the moderation service
- utils/: Caching, metrics and async helpers
"""

__version__ = "1.0.0"
