"""
NewsGuard - Health Router
=========================

Liveness and detailed status endpoints.
"""

import os
import sqlite3
import time
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter, Depends

from newsguard.core.logger import logger
from newsguard.api.dependencies import get_moderation_service
from newsguard.api.models.base import APIResponse, QuotaUsageModel, SystemHealth
from newsguard.services.moderation.service import ModerationService


router = APIRouter(prefix="/health", tags=["Health"])

_start_time = time.time()


@router.get("", response_model=APIResponse[dict])
async def health_check() -> APIResponse[dict]:
    """Liveness only; does not touch the service."""
    return APIResponse(
        success=True,
        data={
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.get("/detailed", response_model=APIResponse[SystemHealth])
async def detailed_health(
    service: ModerationService = Depends(get_moderation_service),
) -> APIResponse[SystemHealth]:
    """
    Process resources, cache store, quota usage and pipeline metrics.

    Reports "degraded" when the durable cache store does not answer.
    """
    process = psutil.Process(os.getpid())
    memory_mb = process.memory_info().rss / (1024 * 1024)
    cpu_percent = process.cpu_percent(interval=0.1)

    db_connected = service.db is None
    if service.db is not None:
        try:
            service.db.fetchone("SELECT 1")
            db_connected = True
        except sqlite3.Error:
            db_connected = False

    usage = service.usage()
    health = SystemHealth(
        status="healthy" if db_connected else "degraded",
        uptime_seconds=int(time.time() - _start_time),
        memory_mb=round(memory_mb, 2),
        cpu_percent=round(cpu_percent, 2),
        classifier_enabled=bool(getattr(service.classifier, "enabled", True)),
        db_connected=db_connected,
        cache_entries=service.cache_size(),
        quota=QuotaUsageModel(**usage.to_dict()),
        metrics=service.metrics.get_summary(),
    )

    logger.debug("Health Check (Detailed)", [
        ("Status", health.status),
        ("Memory", f"{health.memory_mb}MB"),
        ("Quota", f"{usage.used}/{usage.limit}"),
        ("Cache Entries", str(health.cache_entries)),
    ])

    return APIResponse(success=True, data=health)


__all__ = ["router"]
