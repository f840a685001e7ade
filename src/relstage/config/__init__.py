"""Application configuration helpers."""

from __future__ import annotations

from .env import parse_env_flag
from .errors import ConfigurationError
from .logging import configure_logging
from .staging import StagingConfig, get_staging_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "StagingConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_staging_config",
    "get_storage_config",
    "parse_env_flag",
]
