"""
NewsGuard - API Package
=======================

FastAPI-based REST API over the moderation service.

Usage:
    from newsguard.api import APIService

    api_service = APIService(service)
    await api_service.start()
    ...
    await api_service.stop()

Standalone (for development):
    uvicorn newsguard.api.app:create_app --factory --reload
"""

import asyncio
from typing import Optional

import uvicorn

from newsguard.core.logger import logger
from newsguard.utils.async_utils import create_safe_task
from newsguard.api.config import APIConfig, get_api_config
from newsguard.api.app import create_app
from newsguard.services.moderation.service import ModerationService


# =============================================================================
# API Service
# =============================================================================

class APIService:
    """
    Runs the FastAPI server as a background task of the current loop.
    """

    def __init__(self, service: Optional[ModerationService] = None, config: Optional[APIConfig] = None) -> None:
        self._config = config or get_api_config()
        self._app = create_app(service)
        self._server: Optional[uvicorn.Server] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the API server in a background task."""
        if self.is_running:
            logger.warning("API Already Running")
            return

        config = uvicorn.Config(
            app=self._app,
            host=self._config.host,
            port=self._config.port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._task = create_safe_task(self._server.serve(), "API Server")

        logger.tree("API Service Started", [
            ("Host", self._config.host),
            ("Port", str(self._config.port)),
            ("Debug", str(self._config.debug)),
        ], emoji="🌐")

    async def wait(self) -> None:
        """Block until the server task finishes."""
        if self._task is not None:
            await self._task

    async def stop(self) -> None:
        """Stop the API server gracefully."""
        if not self.is_running:
            return

        logger.tree("API Service Stopping", [], emoji="🛑")

        if self._server:
            self._server.should_exit = True

        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=5.0)
            except asyncio.TimeoutError:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass

        self._server = None
        self._task = None

        logger.tree("API Service Stopped", [], emoji="✅")


__all__ = ["APIService", "create_app"]
