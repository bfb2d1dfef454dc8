from __future__ import annotations

import asyncio
import json
from collections.abc import Callable  # noqa: TC003
from typing import TYPE_CHECKING

import httpx
import pytest

from subrecon.adapters.admin_api import AdminApiClient
from subrecon.adapters.http_resilience import ResilientClient
from subrecon.config.admin_api import AdminApiConfig, build_admin_resilience
from subrecon.config.http_resilience import ResilienceConfig  # noqa: TC001
from subrecon.domain.errors import SourceUnavailableError

if TYPE_CHECKING:
    from subrecon.domain.expirations import ExpiredRow
    from subrecon.domain.model import UserPage

BASE_URL = "http://admin.test/api"


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            headers=dict(resilience.default_headers or {}),
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


def _config(*, debug_user: str | None = None) -> AdminApiConfig:
    return AdminApiConfig(
        base_url=BASE_URL,
        token="secret",
        resilience=build_admin_resilience(BASE_URL),
        debug_user=debug_user,
    )


def _list_users(
    handler: Callable[[httpx.Request], httpx.Response],
    *,
    page: int = 1,
    page_size: int = 50,
    query: str | None = None,
    debug_user: str | None = None,
) -> UserPage:
    async def run() -> UserPage:
        async with AdminApiClient(
            config=_config(debug_user=debug_user),
            client_factory=_make_client_factory(handler),
        ) as api:
            return await api.list_users(page=page, page_size=page_size, query=query)

    return asyncio.run(run())


def _fetch_summary(
    handler: Callable[[httpx.Request], httpx.Response],
    *,
    days: int = 10,
) -> list[ExpiredRow] | None:
    async def run() -> list[ExpiredRow] | None:
        async with AdminApiClient(
            config=_config(),
            client_factory=_make_client_factory(handler),
        ) as api:
            return await api.fetch_expired_summary(days=days)

    return asyncio.run(run())


USERS_PAYLOAD: dict[str, object] = {
    "items": [
        {
            "_id": "u1",
            "name": "Asha",
            "email": "asha@example.com",
            "purchases": [
                {
                    "_id": "p1",
                    "productName": "FNO Khazana",
                    "productKey": "fno-khazana",
                    "status": "active",
                    "endsAt": "2025-06-13T12:00:00Z",
                },
                {"_id": 7, "productName": "Journaling", "endsAt": 1750000000000},
                {"productName": "broken, no id"},
            ],
        },
        {"name": "No id at all"},
    ],
    "page": 1,
    "pageSize": 2,
    "total": 5,
}


def test_list_users_sends_paging_and_auth() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=USERS_PAYLOAD)

    _list_users(handler, page=3, page_size=25, query="asha", debug_user="ops")

    (request,) = seen
    assert request.url.path == "/api/admin/users"
    assert request.url.params["page"] == "3"
    assert request.url.params["pageSize"] == "25"
    assert request.url.params["q"] == "asha"
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.headers["X-Debug-User"] == "ops"
    assert request.headers["Accept"] == "application/json"


def test_list_users_omits_blank_query() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"items": [], "total": 0})

    _list_users(handler)

    assert "q" not in seen[0].url.params
    assert "X-Debug-User" not in seen[0].headers


def test_list_users_parses_records_and_counts_skipped() -> None:
    page = _list_users(lambda _request: httpx.Response(200, json=USERS_PAYLOAD))

    assert page.total == 5
    assert page.page_size == 2
    assert page.skipped == 1
    (user,) = page.items
    assert user.id == "u1"
    assert [purchase.id for purchase in user.purchases] == ["p1", "7"]
    first, second = user.purchases
    assert first.ends_at is not None
    assert first.ends_at.isoformat() == "2025-06-13T12:00:00+00:00"
    assert second.ends_at is not None
    assert second.ends_at.year == 2025


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json={"items": "nope"}),
    ],
)
def test_list_users_failures_raise_source_unavailable(response: httpx.Response) -> None:
    with pytest.raises(SourceUnavailableError) as excinfo:
        _list_users(lambda _request: response, page=4)

    assert excinfo.value.page == 4


def test_list_users_requires_context_manager() -> None:
    api = AdminApiClient(config=_config())

    with pytest.raises(RuntimeError, match="context manager"):
        asyncio.run(api.list_users(page=1, page_size=10))


SUMMARY_ROWS: list[dict[str, object]] = [
    {
        "_id": "row-1",
        "endsAt": "2025-06-13T12:00:00Z",
        "user": {"_id": "u1", "name": "Asha"},
        "product": {"_id": "prod-1", "key": "fno-khazana", "name": "FNO Khazana"},
    },
    {"_id": "row-2", "user": {}, "product": {"name": "Journaling"}},
]


def test_fetch_summary_uses_first_endpoint() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"items": SUMMARY_ROWS})

    rows = _fetch_summary(handler, days=7)

    assert rows is not None
    (row,) = rows
    assert row.id == "u1:fno_khazana"
    assert row.product.name == "FNO Khazana"
    assert row.product.key == "fno-khazana"
    assert len(seen) == 1
    assert "/api/admin/expired" in seen[0]
    assert "days=7" in seen[0]


def test_fetch_summary_falls_back_to_renewals_endpoint() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path.endswith("/admin/expired"):
            return httpx.Response(404)
        assert request.url.params["expired"] == "1"
        return httpx.Response(200, content=json.dumps(SUMMARY_ROWS).encode())

    rows = _fetch_summary(handler)

    assert seen == ["/api/admin/expired", "/api/admin/renewals"]
    assert rows is not None
    assert [row.user.id for row in rows] == ["u1"]


def test_fetch_summary_returns_none_when_every_endpoint_fails() -> None:
    assert _fetch_summary(lambda _request: httpx.Response(503)) is None
