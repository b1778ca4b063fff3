"""
NewsGuard - API Configuration
=============================

Settings for the FastAPI service, read from the environment once.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class APIConfig:
    """Settings for the HTTP surface only; engine tunables live in core.config."""

    # Server
    host: str = "0.0.0.0"
    port: int = 8090
    debug: bool = False

    # CORS
    cors_origins: Tuple[str, ...] = ("*",)

    # Requests
    max_batch_items: int = 100

    # Maintenance
    purge_interval: int = 3600  # seconds


def _env_int(name: str, default: int) -> int:
    """Integer from the environment; unparseable values keep the default."""
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def load_api_config() -> APIConfig:
    """Read NEWSGUARD_API_* and NEWSGUARD_CACHE_PURGE_INTERVAL."""
    origins = os.getenv("NEWSGUARD_API_CORS_ORIGINS", "*")
    return APIConfig(
        host=os.getenv("NEWSGUARD_API_HOST", "0.0.0.0"),
        port=_env_int("NEWSGUARD_API_PORT", 8090),
        debug=os.getenv("NEWSGUARD_API_DEBUG", "false").lower() == "true",
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) or ("*",),
        max_batch_items=_env_int("NEWSGUARD_API_MAX_BATCH", 100),
        purge_interval=_env_int("NEWSGUARD_CACHE_PURGE_INTERVAL", 3600),
    )


_config: Optional[APIConfig] = None


def get_api_config() -> APIConfig:
    """APIConfig for this process, loaded on first call."""
    global _config
    if _config is None:
        _config = load_api_config()
    return _config


__all__ = ["APIConfig", "get_api_config", "load_api_config"]
