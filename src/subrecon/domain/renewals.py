"""Upcoming renewals: individual cycles that end soon, not folded by product."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .identity import canonicalize, product_label
from .model import ProductSummary, UserSummary
from .scanning import ScanReport, ScanSettings, UserScan
from .time_windows import TimeWindow

if TYPE_CHECKING:
    from datetime import datetime

    from .model import UserRecord
    from .ports import UserDirectory
    from .scanning import CancelToken

log = getLogger(__name__)


@dataclass(slots=True, frozen=True, kw_only=True)
class RenewalRow:
    id: str
    ends_at: datetime
    status: str | None
    user: UserSummary
    product: ProductSummary


@dataclass(slots=True, frozen=True)
class RenewalScan:
    rows: list[RenewalRow]
    report: ScanReport

    @property
    def truncated(self) -> bool:
        return self.report.truncated


def renewal_rows_for_user(user: UserRecord, *, window: TimeWindow) -> list[RenewalRow]:
    rows: list[RenewalRow] = []
    for purchase in user.purchases:
        if purchase.ends_at is None or not window.contains(purchase.ends_at):
            continue
        identity = canonicalize(purchase)
        rows.append(
            RenewalRow(
                id=purchase.id,
                ends_at=purchase.ends_at,
                status=purchase.status,
                user=UserSummary.of(user),
                product=ProductSummary(
                    id=purchase.product_id or identity.slug,
                    key=purchase.product_key or identity.slug,
                    name=product_label(purchase),
                ),
            )
        )
    return rows


async def upcoming_renewals(
    directory: UserDirectory,
    *,
    window_days: int,
    now: datetime,
    settings: ScanSettings,
    cancel: CancelToken | None = None,
) -> RenewalScan:
    window = TimeWindow.leading(window_days, now=now)
    scan = UserScan(directory, settings, cancel=cancel)
    rows: list[RenewalRow] = []
    async for user in scan.users():
        rows.extend(renewal_rows_for_user(user, window=window))

    rows.sort(key=lambda row: (row.ends_at, row.user.id, row.id))
    log.info(
        "Found %s upcoming renewals within %s day(s) (users=%s, truncated=%s)",
        len(rows),
        window_days,
        scan.report.scanned,
        scan.report.truncated,
    )
    return RenewalScan(rows=rows, report=scan.report)


__all__ = ["RenewalRow", "RenewalScan", "renewal_rows_for_user", "upcoming_renewals"]
