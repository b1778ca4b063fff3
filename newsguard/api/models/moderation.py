"""
NewsGuard - Moderation API Models
=================================

Request and response bodies for the moderation endpoints.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from newsguard.services.moderation.models import ContentItem, ModerationOptions, ModerationVerdict


MAX_FIELD_LENGTH = 10_000


# =============================================================================
# Requests
# =============================================================================

class OptionsModel(BaseModel):
    """Per-request moderation knobs."""

    check_copyright: bool = Field(True, description="Scan for copyright/plagiarism phrases")
    strict_mode: bool = Field(False, description="Block high risk when a severe axis concurs")
    allow_unconfirmed: bool = Field(False, description="Treat classifier outages as low risk")

    def to_options(self) -> ModerationOptions:
        return ModerationOptions(
            check_copyright=self.check_copyright,
            strict_mode=self.strict_mode,
            allow_unconfirmed=self.allow_unconfirmed,
        )


class ContentItemModel(BaseModel):
    """One news item."""

    title: str = Field("", max_length=MAX_FIELD_LENGTH)
    summary: str = Field("", max_length=MAX_FIELD_LENGTH)
    source: str = Field("", max_length=MAX_FIELD_LENGTH)

    def to_item(self) -> ContentItem:
        return ContentItem(title=self.title, summary=self.summary, source=self.source)


class EvaluateRequest(ContentItemModel):
    """Single-item evaluation request."""

    options: OptionsModel = Field(default_factory=OptionsModel)


class BatchRequest(BaseModel):
    """Batch evaluation request."""

    items: List[ContentItemModel]
    options: OptionsModel = Field(default_factory=OptionsModel)


# =============================================================================
# Responses
# =============================================================================

class VerdictModel(BaseModel):
    """Moderation verdict as returned over HTTP."""

    is_safe: bool
    is_blocked: bool
    risk_level: str = Field(description="low, medium, high or prohibited")
    categories: List[str] = Field(default_factory=list)
    reasons: List[str] = Field(default_factory=list)
    copyright_risk: bool = False
    copyright_matches: Optional[List[str]] = None
    confidence: float = Field(ge=0, le=1)
    block_reason: Optional[str] = Field(None, description="Set only when the item is blocked")

    @classmethod
    def from_verdict(cls, verdict: ModerationVerdict) -> "VerdictModel":
        return cls(
            **verdict.to_dict(),
            block_reason=verdict.block_reason() if verdict.should_block() else None,
        )


class BatchResult(BaseModel):
    """Index-aligned verdicts for a batch."""

    verdicts: List[VerdictModel]
    total: int
    blocked: int


__all__ = [
    "OptionsModel",
    "ContentItemModel",
    "EvaluateRequest",
    "BatchRequest",
    "VerdictModel",
    "BatchResult",
]
