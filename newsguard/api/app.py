"""
NewsGuard - FastAPI Application
===============================

App factory for the HTTP front of the moderation engine.

The lifespan builds a ModerationService from the environment unless a
caller injected one (tests do), and runs the periodic cache purge.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from newsguard import __version__
from newsguard.core.logger import logger
from newsguard.api.config import get_api_config
from newsguard.api.dependencies import peek_moderation_service, set_moderation_service
from newsguard.api.errors import ErrorCode, error_response
from newsguard.api.routers import health_router, moderation_router
from newsguard.services.moderation.service import ModerationService, create_moderation_service
from newsguard.utils.async_utils import create_safe_task


# =============================================================================
# OpenAPI Documentation
# =============================================================================

API_DESCRIPTION = """
## NewsGuard Moderation API

Allow/block verdicts for aggregated news items, backed by a rate-limited
toxicity classifier and local heuristics.

Evaluations always answer with a verdict. A slow or unavailable classifier
yields a flagged (medium) or assumed-safe (low, confidence 0.3) verdict,
never an HTTP error. Only empty content and high-confidence classifier
scores block.
"""

OPENAPI_TAGS = [
    {
        "name": "Health",
        "description": "Health check and status endpoints",
    },
    {
        "name": "Moderation",
        "description": "Single and batch content evaluation, quota usage",
    },
]


# =============================================================================
# Background Maintenance
# =============================================================================

async def _purge_loop(service: ModerationService, interval: int) -> None:
    """Periodically drop expired cache entries."""
    while True:
        await asyncio.sleep(interval)
        service.purge_expired()


# =============================================================================
# Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the purge loop; close the service only if it was built here."""
    config = get_api_config()

    service = peek_moderation_service()
    owns_service = service is None
    if service is None:
        service = create_moderation_service()
        set_moderation_service(service)

    purge_task = None
    if config.purge_interval > 0:
        purge_task = create_safe_task(_purge_loop(service, config.purge_interval), "Cache Purge Loop")

    logger.tree("API Starting", [
        ("Version", __version__),
        ("Owns Service", str(owns_service)),
        ("Purge Interval", f"{config.purge_interval}s"),
    ], emoji="🚀")

    yield

    logger.tree("API Stopping", [], emoji="🛑")

    if purge_task is not None:
        purge_task.cancel()
    if owns_service:
        await service.close()
        set_moderation_service(None)


# =============================================================================
# Application Factory
# =============================================================================

def create_app(service: Optional[ModerationService] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        service: Serve this service instead of building one at startup.
    """
    config = get_api_config()

    app = FastAPI(
        title="NewsGuard API",
        description=API_DESCRIPTION,
        version=__version__,
        docs_url="/docs" if config.debug else None,
        redoc_url="/redoc" if config.debug else None,
        openapi_url="/openapi.json" if config.debug else None,
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )

    if service is not None:
        set_moderation_service(service)

    # ==========================================================================
    # Middleware
    # ==========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==========================================================================
    # Exception Handlers
    # ==========================================================================

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return error_response(
            ErrorCode.VALIDATION_FAILED,
            details={
                "errors": [
                    {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled API Error", [
            ("Path", str(request.url.path)[:50]),
            ("Method", request.method),
            ("Error Type", type(exc).__name__),
            ("Error", str(exc)[:100]),
        ])

        return error_response(
            ErrorCode.SERVER_ERROR,
            details={"path": str(request.url.path)} if config.debug else None,
        )

    # ==========================================================================
    # Routers
    # ==========================================================================

    app.include_router(health_router)
    app.include_router(moderation_router)

    return app


__all__ = ["create_app", "lifespan"]
