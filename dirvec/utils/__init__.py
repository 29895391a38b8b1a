"""Utility modules."""

from .config import (
    AppConfig,
    Environment,
    Settings,
    get_absolute_path,
    get_config,
    get_project_root,
    get_settings,
)
from .logger import get_logger, setup_logging
from .retry import RetryStrategy

__all__ = [
    # Config
    "get_config",
    "get_settings",
    "AppConfig",
    "Environment",
    "Settings",
    "get_absolute_path",
    "get_project_root",
    # Logging
    "setup_logging",
    "get_logger",
    # Retry
    "RetryStrategy",
]
