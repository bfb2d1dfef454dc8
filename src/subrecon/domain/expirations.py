"""Expired-without-renewal scanner.

A product counts as expired for a user only when *no* cycle of that product covers
"now" (allowing for clock skew), and the latest cycle ended inside the trailing
window. Earlier cycles of the same product are never reported on their own.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .folding import SubscriptionStatus, group_by_identity, latest_cycle
from .identity import EntitlementKey, product_label
from .model import ProductSummary, UserSummary
from .scanning import ScanReport, ScanSettings, UserScan
from .time_windows import TimeWindow, is_active_at

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime, timedelta

    from .model import UserRecord
    from .ports import UserDirectory
    from .scanning import CancelToken

log = getLogger(__name__)


@dataclass(slots=True, frozen=True, kw_only=True)
class ExpiredRow:
    key: EntitlementKey
    ends_at: datetime | None
    user: UserSummary
    product: ProductSummary
    status: SubscriptionStatus = SubscriptionStatus.EXPIRED

    @property
    def id(self) -> str:
        return str(self.key)


@dataclass(slots=True, frozen=True)
class ExpiredScan:
    rows: list[ExpiredRow]
    report: ScanReport

    @property
    def truncated(self) -> bool:
        return self.report.truncated


def sort_most_recent_first(rows: Iterable[ExpiredRow]) -> list[ExpiredRow]:
    """Most recently expired first; rows without ``ends_at`` go last."""

    materialized = list(rows)
    dated = [row for row in materialized if row.ends_at is not None]
    undated = [row for row in materialized if row.ends_at is None]
    dated.sort(key=lambda row: (row.ends_at, str(row.key)), reverse=True)
    return dated + undated


def expired_rows_for_user(
    user: UserRecord,
    *,
    window: TimeWindow,
    now: datetime,
    clock_skew: timedelta,
) -> list[ExpiredRow]:
    rows: list[ExpiredRow] = []
    for identity, cycles in group_by_identity(user.purchases).items():
        if any(is_active_at(cycle.ends_at, now=now, clock_skew=clock_skew) for cycle in cycles):
            continue
        latest = latest_cycle(cycles)
        if latest is None:
            log.debug("Skipping %s:%s, no cycle has an end date", user.id, identity)
            continue
        if not window.contains(latest.ends_at):
            continue
        rows.append(
            ExpiredRow(
                key=EntitlementKey(user_id=user.id, identity=identity),
                ends_at=latest.ends_at,
                user=UserSummary.of(user),
                product=ProductSummary(
                    id=latest.product_id or identity.slug,
                    key=identity.slug,
                    name=product_label(latest),
                ),
            )
        )
    return rows


async def scan_expired(
    directory: UserDirectory,
    *,
    window_days: int,
    now: datetime,
    settings: ScanSettings,
    cancel: CancelToken | None = None,
) -> ExpiredScan:
    window = TimeWindow.trailing(window_days, now=now)
    scan = UserScan(directory, settings, cancel=cancel)
    by_key: dict[EntitlementKey, ExpiredRow] = {}
    async for user in scan.users():
        for row in expired_rows_for_user(
            user, window=window, now=now, clock_skew=settings.clock_skew
        ):
            by_key[row.key] = row

    rows = sort_most_recent_first(by_key.values())
    report = scan.report
    log.info(
        "Scanned expirations: rows=%s, users=%s, window_days=%s, truncated=%s",
        len(rows),
        report.scanned,
        window_days,
        report.truncated,
    )
    return ExpiredScan(rows=rows, report=report)


__all__ = [
    "ExpiredRow",
    "ExpiredScan",
    "expired_rows_for_user",
    "scan_expired",
    "sort_most_recent_first",
]
