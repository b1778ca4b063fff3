"""
NewsGuard - API Models
======================

Pydantic models for request/response validation.
"""

from .base import APIResponse, ErrorResponse, QuotaUsageModel, SystemHealth
from .moderation import (
    BatchRequest,
    BatchResult,
    ContentItemModel,
    EvaluateRequest,
    OptionsModel,
    VerdictModel,
)


__all__ = [
    "APIResponse",
    "ErrorResponse",
    "QuotaUsageModel",
    "SystemHealth",
    "BatchRequest",
    "BatchResult",
    "ContentItemModel",
    "EvaluateRequest",
    "OptionsModel",
    "VerdictModel",
]
