"""Application configuration helpers."""

from __future__ import annotations

from .admin_api import AdminApiConfig, build_admin_resilience, get_admin_api_config
from .env import optional_bool_env, optional_env_var, optional_int_env, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .reconciliation import ReconciliationConfig, get_reconciliation_config

__all__ = [
    "AdminApiConfig",
    "CacheConfig",
    "ConfigurationError",
    "MissingConfigurationError",
    "RateLimit",
    "ReconciliationConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "build_admin_resilience",
    "configure_logging",
    "get_admin_api_config",
    "get_reconciliation_config",
    "optional_bool_env",
    "optional_env_var",
    "optional_int_env",
    "require_env_vars",
]
