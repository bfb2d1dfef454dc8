"""HTTP client for the admin users API and its expiry summary endpoints."""

from __future__ import annotations

from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from subrecon.adapters.http_resilience import ResilientClient
from subrecon.domain.errors import SourceUnavailableError

from .schema import ExpiredSummaryResponse, UsersResponse
from .translator import parse_expired_summary, parse_user_page

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from subrecon.config.admin_api import AdminApiConfig
    from subrecon.config.http_resilience import ResilienceConfig
    from subrecon.domain.expirations import ExpiredRow
    from subrecon.domain.model import UserPage

log = getLogger(__name__)

USERS_PATH = "admin/users"
EXPIRED_SUMMARY_PATH = "admin/expired"
RENEWALS_PATH = "admin/renewals"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def summary_endpoints(days: int) -> tuple[tuple[str, dict[str, str | int]], ...]:
    """Candidate summary endpoints, in the order they are tried."""

    return (
        (EXPIRED_SUMMARY_PATH, {"days": days, "unrenewed": 1}),
        (RENEWALS_PATH, {"expired": 1, "unrenewed": 1, "days": days}),
    )


class AdminApiClient:
    """Async admin API client implementing the user directory and summary ports.

    Use as an async context manager; one HTTP client is kept open for its lifetime,
    which is meant to be a single reconciliation call.
    """

    def __init__(
        self,
        *,
        config: AdminApiConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or _default_client_factory
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> AdminApiClient:
        self._client = self._client_factory(self._resilience())
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _resilience(self) -> ResilienceConfig:
        resilience = self._config.resilience
        headers = dict(resilience.default_headers or {})
        headers["Authorization"] = f"Bearer {self._config.token}"
        if self._config.debug_user:
            headers["X-Debug-User"] = self._config.debug_user
        return replace(resilience, default_headers=headers)

    def _http(self) -> ResilientClient:
        if self._client is None:
            raise RuntimeError("AdminApiClient must be used as an async context manager")
        return self._client

    async def list_users(
        self,
        *,
        page: int,
        page_size: int,
        query: str | None = None,
    ) -> UserPage:
        params: dict[str, str | int] = {"page": page, "pageSize": page_size}
        if query:
            params["q"] = query
        payload = await self._get_json(USERS_PATH, params=params, page=page)
        try:
            response = UsersResponse.model_validate(payload)
        except ValidationError as exc:
            raise SourceUnavailableError(f"Malformed user page {page}", page=page) from exc
        return parse_user_page(response, requested_page=page)

    async def fetch_expired_summary(self, *, days: int) -> list[ExpiredRow] | None:
        for path, params in summary_endpoints(days):
            try:
                payload = await self._get_json(path, params=params)
                response = ExpiredSummaryResponse.model_validate(payload)
            except (SourceUnavailableError, ValidationError) as exc:
                log.info("Expiry summary endpoint %s unusable: %s", path, exc)
                continue
            rows = parse_expired_summary(response)
            log.info("Expiry summary from %s returned %s row(s)", path, len(rows))
            return rows
        return None

    async def _get_json(
        self,
        path: str,
        *,
        params: dict[str, str | int],
        page: int | None = None,
    ) -> object:
        try:
            response = await self._http().get(path, params=httpx.QueryParams(params))
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(f"Request to {path} failed: {exc}", page=page) from exc
        except ValueError as exc:
            raise SourceUnavailableError(f"Invalid JSON from {path}", page=page) from exc


__all__ = ["AdminApiClient", "summary_endpoints"]
