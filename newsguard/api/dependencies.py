"""
NewsGuard - API Dependencies
============================

FastAPI dependency injection for the moderation service.
"""

from typing import Optional

from newsguard.api.errors import APIError, ErrorCode
from newsguard.services.moderation.service import ModerationService


# =============================================================================
# Service Reference
# =============================================================================

_service_instance: Optional[ModerationService] = None


def set_moderation_service(service: Optional[ModerationService]) -> None:
    """Set the service instance for dependency injection."""
    global _service_instance
    _service_instance = service


def get_moderation_service() -> ModerationService:
    """Get the service instance, 503 when the app has not wired one."""
    if _service_instance is None:
        raise APIError(ErrorCode.SERVICE_NOT_INITIALIZED)
    return _service_instance


def peek_moderation_service() -> Optional[ModerationService]:
    """Service instance or None, for endpoints that degrade instead of failing."""
    return _service_instance


__all__ = [
    "set_moderation_service",
    "get_moderation_service",
    "peek_moderation_service",
]
