"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from subrecon.adapters.admin_api import AdminApiClient
from subrecon.config import AdminApiConfig, get_admin_api_config, get_reconciliation_config
from subrecon.domain.reconciliation import reconcile_expired
from subrecon.domain.reminders import (
    DEFAULT_DISPLAY_TIMEZONE,
    DEFAULT_REMINDER_DAYS,
    build_reminder_queue,
)
from subrecon.domain.renewals import upcoming_renewals
from subrecon.domain.scanning import UserScan
from subrecon.domain.time_windows import utcnow

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from subrecon.adapters.http_resilience import ResilientClient
    from subrecon.config import ReconciliationConfig, ResilienceConfig
    from subrecon.domain.model import UserRecord
    from subrecon.domain.ports import ExpiredSummarySource, UserDirectory
    from subrecon.domain.reconciliation import ReconciliationResult
    from subrecon.domain.reminders import ExpiryReminder
    from subrecon.domain.renewals import RenewalScan
    from subrecon.domain.scanning import CancelToken, ScanSettings
    from subrecon.domain.time_windows import Clock

log = getLogger(__name__)

type ClientFactory = Callable[[ResilienceConfig], ResilientClient]


async def _with_directory[T](
    work: Callable[[UserDirectory, ExpiredSummarySource | None], Awaitable[T]],
    *,
    directory: UserDirectory | None,
    summary: ExpiredSummarySource | None,
    api_config: AdminApiConfig | None,
    client_factory: ClientFactory | None,
) -> T:
    if directory is not None:
        return await work(directory, summary)
    async with AdminApiClient(
        config=api_config or get_admin_api_config(),
        client_factory=client_factory,
    ) as api:
        return await work(api, summary or api)


def reconcile_expired_subscriptions(
    *,
    window_days: int | None = None,
    directory: UserDirectory | None = None,
    summary: ExpiredSummarySource | None = None,
    config: ReconciliationConfig | None = None,
    api_config: AdminApiConfig | None = None,
    client_factory: ClientFactory | None = None,
    clock: Clock = utcnow,
    cancel: CancelToken | None = None,
) -> ReconciliationResult:
    """List subscriptions that expired recently without being renewed."""

    effective_config = config or get_reconciliation_config()
    days = window_days if window_days is not None else effective_config.expired_window_days
    now = clock()
    log.info("Reconciling expired subscriptions: window_days=%s, now=%s", days, now)

    async def work(
        source: UserDirectory, summary_source: ExpiredSummarySource | None
    ) -> ReconciliationResult:
        return await reconcile_expired(
            source,
            window_days=days,
            now=now,
            settings=effective_config.scan,
            summary=summary_source,
            cancel=cancel,
        )

    result = asyncio.run(
        _with_directory(
            work,
            directory=directory,
            summary=summary,
            api_config=api_config,
            client_factory=client_factory,
        )
    )
    log.info(
        "Finished expiry reconciliation: rows=%s, source=%s, status=%s",
        len(result.items),
        result.source,
        result.status,
    )
    return result


def list_upcoming_renewals(
    *,
    window_days: int | None = None,
    directory: UserDirectory | None = None,
    config: ReconciliationConfig | None = None,
    api_config: AdminApiConfig | None = None,
    client_factory: ClientFactory | None = None,
    clock: Clock = utcnow,
    cancel: CancelToken | None = None,
) -> RenewalScan:
    """List individual purchase cycles that end within the next ``window_days``."""

    effective_config = config or get_reconciliation_config()
    days = window_days if window_days is not None else effective_config.renewal_window_days
    now = clock()

    async def work(source: UserDirectory, _summary: ExpiredSummarySource | None) -> RenewalScan:
        return await upcoming_renewals(
            source,
            window_days=days,
            now=now,
            settings=effective_config.scan,
            cancel=cancel,
        )

    return asyncio.run(
        _with_directory(
            work,
            directory=directory,
            summary=None,
            api_config=api_config,
            client_factory=client_factory,
        )
    )


async def find_user(
    directory: UserDirectory,
    user_id: str,
    *,
    settings: ScanSettings,
    query: str | None = None,
) -> UserRecord | None:
    scan = UserScan(directory, settings, query=query)
    async for user in scan.users():
        if user.id == user_id:
            return user
    return None


def expiry_reminders_for_user(
    user_id: str,
    *,
    query: str | None = None,
    max_days: int = DEFAULT_REMINDER_DAYS,
    timezone: str = DEFAULT_DISPLAY_TIMEZONE,
    directory: UserDirectory | None = None,
    config: ReconciliationConfig | None = None,
    api_config: AdminApiConfig | None = None,
    client_factory: ClientFactory | None = None,
    clock: Clock = utcnow,
) -> list[ExpiryReminder]:
    """Compute the expiry reminder queue for one customer."""

    effective_config = config or get_reconciliation_config()
    settings = effective_config.scan
    now = clock()

    async def work(
        source: UserDirectory, _summary: ExpiredSummarySource | None
    ) -> UserRecord | None:
        return await find_user(source, user_id, settings=settings, query=query)

    user = asyncio.run(
        _with_directory(
            work,
            directory=directory,
            summary=None,
            api_config=api_config,
            client_factory=client_factory,
        )
    )
    if user is None:
        raise LookupError(f"User {user_id} not found")
    return build_reminder_queue(
        user,
        now=now,
        clock_skew=settings.clock_skew,
        max_days=max_days,
        timezone=timezone,
    )
