"""
NewsGuard - Base API Models
===========================

Common response envelope and health models.
"""

from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field


# =============================================================================
# Generic Type Variables
# =============================================================================

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Base Response Models
# =============================================================================

class APIResponse(BaseModel, Generic[T]):
    """Envelope around every successful payload."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class ErrorResponse(BaseModel):
    """Body of every non-2xx response (see api.errors)."""

    success: bool = False
    error_code: str
    message: str
    details: Optional[dict[str, Any]] = None


# =============================================================================
# Health Models
# =============================================================================

class QuotaUsageModel(BaseModel):
    """Classifier quota occupancy."""

    used: int = Field(ge=0, description="Permits granted in the trailing window")
    limit: int = Field(ge=1, description="Permits allowed per window")
    percentage: float = Field(ge=0, description="used / limit * 100")
    queue_length: int = Field(ge=0, description="Callers waiting for a permit")


class SystemHealth(BaseModel):
    """Detailed health of the moderation service."""

    status: str = Field(description="healthy or degraded")
    uptime_seconds: int
    memory_mb: float
    cpu_percent: float
    classifier_enabled: bool
    db_connected: bool
    cache_entries: int
    quota: QuotaUsageModel
    metrics: dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "APIResponse",
    "ErrorResponse",
    "QuotaUsageModel",
    "SystemHealth",
]
