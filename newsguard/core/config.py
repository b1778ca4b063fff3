"""
NewsGuard - Configuration Module
================================

Moderation engine settings, read once from the environment.

DESIGN:
    load_config() builds a Config; get_config() caches the first one.
    Numbers outside their range are clamped with a warning, so a typo
    in a deployment file degrades a setting instead of stopping the
    process. Only an unusable classifier endpoint is fatal.

    A missing PERSPECTIVE_API_KEY is allowed: the engine then runs on
    keyword heuristics and the fail-open policy alone.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, TypeVar


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_PERSPECTIVE_ENDPOINT = "https://commentanalyzer.googleapis.com/v1alpha1/comments:analyze"

DATA_DIR: Path = Path(__file__).parent.parent.parent / "data"
DEFAULT_CACHE_DB: Path = DATA_DIR / "moderation_cache.db"


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Moderation engine configuration loaded from environment variables.

    Attributes:
        perspective_api_key: Credential for the toxicity classifier.
        perspective_endpoint: URL of the classifier's analyze endpoint.
        requests_per_minute: Outbound classifier quota per trailing minute.
        cache_ttl_seconds: Lifetime of cached classifier results and verdicts.
        item_timeout: Per-item evaluation deadline (seconds).
        batch_timeout: Whole-batch evaluation deadline (seconds).
        quota_wait: Longest a classifier call waits for a quota permit.
        request_timeout: Total HTTP timeout for one classifier request.
        batch_concurrency: Items evaluated at once within a batch.
        pacing_delay: Delay between batch dispatches (seconds).
        cache_db_path: SQLite file backing the result cache.
        error_webhook_url: Optional webhook for error alerts.
    """

    # -------------------------------------------------------------------------
    # Classifier
    # -------------------------------------------------------------------------

    perspective_api_key: Optional[str] = None
    perspective_endpoint: str = DEFAULT_PERSPECTIVE_ENDPOINT
    min_text_length: int = 20

    # -------------------------------------------------------------------------
    # Quota
    # -------------------------------------------------------------------------

    requests_per_minute: int = 60
    quota_wait: float = 3.0
    request_timeout: float = 5.0

    # -------------------------------------------------------------------------
    # Cache
    # -------------------------------------------------------------------------

    cache_ttl_seconds: int = 24 * 60 * 60
    cache_db_path: Optional[Path] = DEFAULT_CACHE_DB

    # -------------------------------------------------------------------------
    # Deadlines
    # -------------------------------------------------------------------------

    item_timeout: float = 2.0
    batch_timeout: float = 10.0
    batch_concurrency: int = 5
    pacing_delay: float = 0.05

    # -------------------------------------------------------------------------
    # Optional: Webhooks
    # -------------------------------------------------------------------------

    error_webhook_url: Optional[str] = None

    @property
    def classifier_enabled(self) -> bool:
        return bool(self.perspective_api_key)


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """A setting is present but cannot be used."""


Number = TypeVar("Number", int, float)


def _env_number(
    name: str,
    default: Number,
    cast: Callable[[str], Number],
    lower: Optional[Number] = None,
    upper: Optional[Number] = None,
) -> Number:
    """
    Read a numeric environment variable.

    Unset means default. A value that does not parse falls back to the
    default, and one outside [lower, upper] is pulled to the nearest
    bound. Both cases log a warning rather than aborting start-up.
    """
    raw = os.getenv(name, "").strip()
    if not raw:
        return default

    from newsguard.core.logger import logger

    try:
        parsed = cast(raw)
    except ValueError:
        logger.warning(f"Config {name}='{raw}' is not a number, keeping {default}")
        return default

    if lower is not None and parsed < lower:
        logger.warning(f"Config {name}={parsed} clamped up to {lower}")
        return lower
    if upper is not None and parsed > upper:
        logger.warning(f"Config {name}={parsed} clamped down to {upper}")
        return upper
    return parsed


def _env_url(name: str) -> Optional[str]:
    """Optional http(s) URL; anything else is ignored with a warning."""
    value = os.getenv(name, "").strip()
    if not value:
        return None
    if not value.startswith(("https://", "http://")):
        from newsguard.core.logger import logger
        logger.warning(f"Config {name} is not an http(s) URL, ignoring")
        return None
    return value


def _parse_cache_path(value: Optional[str]) -> Optional[Path]:
    """Empty keeps the default file, "memory" disables the durable tier."""
    if not value:
        return DEFAULT_CACHE_DB
    if value.strip().lower() in ("memory", ":memory:", "none"):
        return None
    return Path(value)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config() -> Config:
    """
    Build a Config from the current environment.

    Raises:
        ConfigValidationError: If PERSPECTIVE_ENDPOINT is set but not a URL.
    """
    endpoint = os.getenv("PERSPECTIVE_ENDPOINT", "").strip() or DEFAULT_PERSPECTIVE_ENDPOINT
    if not endpoint.startswith(("https://", "http://")):
        raise ConfigValidationError(f"Invalid PERSPECTIVE_ENDPOINT: {endpoint}")

    item_timeout = _env_number("MODERATION_ITEM_TIMEOUT", 2.0, float, 0.1, 60.0)
    batch_timeout = _env_number("MODERATION_BATCH_TIMEOUT", 10.0, float, 0.1, 300.0)
    ttl_hours = _env_number("MODERATION_CACHE_TTL_HOURS", 24, int, 1, 24 * 30)
    pacing_ms = _env_number("MODERATION_PACING_MS", 50, int, 0, 500)

    return Config(
        perspective_api_key=os.getenv("PERSPECTIVE_API_KEY") or None,
        perspective_endpoint=endpoint,
        min_text_length=_env_number("MODERATION_MIN_TEXT_LENGTH", 20, int, 1, 1000),
        requests_per_minute=_env_number("MODERATION_REQUESTS_PER_MINUTE", 60, int, 1, 6000),
        quota_wait=_env_number("MODERATION_QUOTA_WAIT", 3.0, float, 0.0, 60.0),
        request_timeout=_env_number("MODERATION_REQUEST_TIMEOUT", 5.0, float, 0.5, 60.0),
        cache_ttl_seconds=ttl_hours * 60 * 60,
        cache_db_path=_parse_cache_path(os.getenv("MODERATION_CACHE_DB")),
        item_timeout=item_timeout,
        batch_timeout=max(batch_timeout, item_timeout),
        batch_concurrency=_env_number("MODERATION_BATCH_CONCURRENCY", 5, int, 1, 50),
        pacing_delay=pacing_ms / 1000.0,
        error_webhook_url=_env_url("ERROR_WEBHOOK_URL"),
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Process-wide Config, loaded from the environment on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


# =============================================================================
# Config Validation & Logging
# =============================================================================

def validate_and_log_config() -> Config:
    """
    Load the config and log what the engine will run with.

    Raises:
        ConfigValidationError: If configuration is invalid.
    """
    from newsguard.core.logger import logger

    config = get_config()

    if not config.classifier_enabled:
        logger.warning("PERSPECTIVE_API_KEY not set - classifier disabled, heuristics and fail-open policy only")

    logger.tree("Configuration Validated", [
        ("Classifier", "enabled" if config.classifier_enabled else "disabled"),
        ("Quota", f"{config.requests_per_minute}/min"),
        ("Cache TTL", f"{config.cache_ttl_seconds // 3600}h"),
        ("Cache Store", str(config.cache_db_path) if config.cache_db_path else "memory"),
        ("Item Timeout", f"{config.item_timeout}s"),
        ("Batch Timeout", f"{config.batch_timeout}s"),
        ("Concurrency", str(config.batch_concurrency)),
    ], emoji="⚙️")

    return config


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "Config",
    "ConfigValidationError",
    "get_config",
    "load_config",
    "validate_and_log_config",
    "DEFAULT_PERSPECTIVE_ENDPOINT",
]
