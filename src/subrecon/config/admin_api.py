"""Admin API configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import cast

from .env import optional_bool_env, optional_env_var, require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, ShouldCacheHook

DEFAULT_ADMIN_API_BASE_URL = "http://localhost:8000/api"
ADMIN_API_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class AdminApiConfig:
    """Holds admin API connection values."""

    base_url: str
    token: str
    resilience: ResilienceConfig
    debug_user: str | None = None


def _should_cache_user_page(payload: object) -> bool:
    if not isinstance(payload, dict):
        return False
    return bool(cast(dict[str, object], payload).get("items"))


def build_admin_resilience(
    base_url: str,
    *,
    cache_enabled: bool = False,
    cache_predicate: ShouldCacheHook | None = None,
) -> ResilienceConfig:
    return ResilienceConfig(
        name="admin-api",
        base_url=base_url.rstrip("/") + "/",
        timeout_seconds=ADMIN_API_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        cache=CacheConfig(
            enabled=cache_enabled,
            should_cache=cache_predicate or _should_cache_user_page,
        ),
        default_headers={"Accept": "application/json"},
    )


def get_admin_api_config(*, resilience: ResilienceConfig | None = None) -> AdminApiConfig:
    values = require_env_vars(("ADMIN_API_TOKEN",))
    base_url = optional_env_var("ADMIN_API_BASE_URL") or DEFAULT_ADMIN_API_BASE_URL
    token = values["ADMIN_API_TOKEN"].strip()
    if token.lower().startswith("bearer "):
        token = token[len("bearer ") :].strip()
    return AdminApiConfig(
        base_url=base_url,
        token=token,
        resilience=resilience
        or build_admin_resilience(
            base_url,
            cache_enabled=optional_bool_env("SUBRECON_HTTP_CACHE"),
        ),
        debug_user=optional_env_var("ADMIN_API_DEBUG_USER"),
    )
