"""
NewsGuard - Core Package
========================

Configuration, logging and persistence shared by every service.

DESIGN:
    Core modules expose global accessors so state stays consistent:
    - get_config() returns the same Config instance
    - logger is a global TreeLogger instance
"""

from .config import Config, ConfigValidationError, get_config, load_config, validate_and_log_config
from .logger import logger, TreeLogger
from .database import DatabaseManager


__all__ = [
    "Config",
    "ConfigValidationError",
    "get_config",
    "load_config",
    "validate_and_log_config",
    "logger",
    "TreeLogger",
    "DatabaseManager",
]
