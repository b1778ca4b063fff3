#!/usr/bin/env python3
"""
NewsGuard - Entry Point
=======================

Starts the moderation API server.

Lifecycle:
1. Loads .env into the environment
2. Validates configuration and logs a summary
3. Builds the moderation service (classifier, quota, caches)
4. Serves the HTTP API until interrupted
5. Closes the HTTP session and cache store on the way out
"""

import asyncio
import sys

from dotenv import load_dotenv

load_dotenv()

from newsguard import __version__
from newsguard.api import APIService
from newsguard.core.config import ConfigValidationError, validate_and_log_config
from newsguard.core.logger import logger
from newsguard.services.moderation import create_moderation_service


async def main() -> None:
    """
    Run the service until the server exits or the task is cancelled.

    Raises:
        SystemExit: If the configuration is invalid.
    """
    logger.tree("NEWSGUARD STARTING", [
        ("Version", __version__),
        ("Run ID", logger.run_id),
    ], emoji="🛡️")

    try:
        config = validate_and_log_config()
    except ConfigValidationError as e:
        logger.error("Invalid Configuration", [("Error", str(e))])
        sys.exit(1)

    logger.set_webhook(config.error_webhook_url)

    service = create_moderation_service(config)
    api = APIService(service)

    try:
        await api.start()
        await api.wait()
    finally:
        await api.stop()
        await service.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("NewsGuard stopped by user (Ctrl+C)")
