"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float, env_int, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .github import GitHubConfig, get_github_config
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .identity import IdentityConfig, get_identity_config
from .logging import configure_logging
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_http_cache_path,
    get_storage_config,
)

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "GitHubConfig",
    "IdentityConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "env_float",
    "env_int",
    "get_database_config",
    "get_github_config",
    "get_http_cache_path",
    "get_identity_config",
    "get_storage_config",
    "require_env_vars",
]
