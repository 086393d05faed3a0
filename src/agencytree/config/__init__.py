"""Application configuration helpers."""

from __future__ import annotations

from .env import first_env_var, float_env_var, int_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .surelc import SureLcAccount, SureLcConfig, get_surelc_config, parse_account
from .sync import (
    SyncConfig,
    UploadConfig,
    ViewConfig,
    get_sync_config,
    get_upload_config,
    get_view_config,
)

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SureLcAccount",
    "SureLcConfig",
    "SyncConfig",
    "UploadConfig",
    "ViewConfig",
    "configure_logging",
    "first_env_var",
    "float_env_var",
    "get_surelc_config",
    "get_sync_config",
    "get_upload_config",
    "get_view_config",
    "int_env_var",
    "parse_account",
    "require_env_vars",
]
