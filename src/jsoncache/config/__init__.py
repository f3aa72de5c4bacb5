"""Application configuration helpers."""

from __future__ import annotations

from .cache import CacheConfig, ModelConfig, get_cache_config, get_model_config
from .env import env_choice, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging, get_log_level
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "ModelConfig",
    "StorageConfig",
    "configure_logging",
    "env_choice",
    "get_cache_config",
    "get_database_config",
    "get_log_level",
    "get_model_config",
    "get_storage_config",
    "require_env_vars",
]
