"""
NewsGuard - API Routers
=======================

FastAPI routers grouped by concern.
"""

from .health import router as health_router
from .moderation import router as moderation_router


__all__ = [
    "health_router",
    "moderation_router",
]
