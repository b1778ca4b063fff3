"""
NewsGuard - Moderation Router
=============================

HTTP access to the moderation engine.

Every evaluation answers 200 with a verdict, even when the classifier
is down or slow; infrastructure trouble shows up in the verdict, not as
an HTTP error.
"""

from fastapi import APIRouter, Depends

from newsguard.api.config import get_api_config
from newsguard.api.dependencies import get_moderation_service
from newsguard.api.errors import APIError, ErrorCode
from newsguard.api.models.base import APIResponse, ErrorResponse, QuotaUsageModel
from newsguard.api.models.moderation import BatchRequest, BatchResult, EvaluateRequest, VerdictModel
from newsguard.services.moderation.service import ModerationService


router = APIRouter(prefix="/moderation", tags=["Moderation"])


@router.post(
    "/evaluate",
    response_model=APIResponse[VerdictModel],
    responses={422: {"model": ErrorResponse}},
)
async def evaluate(
    request: EvaluateRequest,
    service: ModerationService = Depends(get_moderation_service),
) -> APIResponse[VerdictModel]:
    """Moderate one news item."""
    verdict = await service.evaluate(
        request.title,
        request.summary,
        request.source,
        request.options.to_options(),
    )
    return APIResponse(success=True, data=VerdictModel.from_verdict(verdict))


@router.post(
    "/batch",
    response_model=APIResponse[BatchResult],
    responses={413: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def evaluate_batch(
    request: BatchRequest,
    service: ModerationService = Depends(get_moderation_service),
) -> APIResponse[BatchResult]:
    """
    Moderate a list of news items.

    Verdicts come back in the same order as the items.
    """
    max_items = get_api_config().max_batch_items
    if len(request.items) > max_items:
        raise APIError(
            ErrorCode.BATCH_TOO_LARGE,
            details={"max_items": max_items, "received": len(request.items)},
        )

    items = [item.to_item() for item in request.items]
    verdicts = await service.evaluate_all(items, request.options.to_options())

    return APIResponse(
        success=True,
        data=BatchResult(
            verdicts=[VerdictModel.from_verdict(v) for v in verdicts],
            total=len(verdicts),
            blocked=sum(1 for v in verdicts if v.should_block()),
        ),
    )


@router.get("/usage", response_model=APIResponse[QuotaUsageModel])
async def quota_usage(
    service: ModerationService = Depends(get_moderation_service),
) -> APIResponse[QuotaUsageModel]:
    """Classifier quota usage in the trailing window."""
    return APIResponse(success=True, data=QuotaUsageModel(**service.usage().to_dict()))


__all__ = ["router"]
