"""Two-tier reconciliation of expired, unrenewed subscriptions.

The summarized source is cheap but may lag behind renewals, so its rows are checked
against a freshly built active-entitlement index. When nothing survives that check,
or the summary is missing or broken, the full user scan decides. An empty answer is
only ever returned by the scan, and a failed scan is reported as unavailable rather
than as "no expirations".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from .entitlements import build_active_index
from .errors import SourceUnavailableError
from .expirations import ExpiredRow, scan_expired, sort_most_recent_first
from .identity import EntitlementKey, first_label, identity_for_label

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime

    from .ports import ExpiredSummarySource, UserDirectory
    from .scanning import CancelToken, ScanSettings

log = getLogger(__name__)


class ResultSource(StrEnum):
    SUMMARY = "summary"
    SCAN = "scan"


class ReconciliationStatus(StrEnum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    UNAVAILABLE = "unavailable"


@dataclass(slots=True, frozen=True, kw_only=True)
class ReconciliationResult:
    items: list[ExpiredRow] = field(default_factory=list)
    source: ResultSource
    status: ReconciliationStatus
    scanned_users: int = 0
    error: str | None = None

    @property
    def truncated(self) -> bool:
        return self.status is ReconciliationStatus.PARTIAL

    @property
    def available(self) -> bool:
        return self.status is not ReconciliationStatus.UNAVAILABLE


def summary_row_key(row: ExpiredRow) -> EntitlementKey:
    """Re-derive the product identity of a summary row from what the admin sees."""

    label = first_label((row.product.name, row.product.key, row.product.id))
    return EntitlementKey(user_id=row.user.id, identity=identity_for_label(label))


def dedupe_rows(rows: Iterable[ExpiredRow]) -> list[ExpiredRow]:
    by_key: dict[EntitlementKey, ExpiredRow] = {}
    for row in rows:
        key = summary_row_key(row)
        existing = by_key.get(key)
        if existing is None or (
            row.ends_at is not None
            and (existing.ends_at is None or row.ends_at > existing.ends_at)
        ):
            by_key[key] = row
    return list(by_key.values())


async def reconcile_expired(
    directory: UserDirectory,
    *,
    window_days: int,
    now: datetime,
    settings: ScanSettings,
    summary: ExpiredSummarySource | None = None,
    cancel: CancelToken | None = None,
) -> ReconciliationResult:
    if window_days < 0:
        raise ValueError("Window days must be non-negative")

    if summary is not None:
        try:
            validated = await _validated_summary(
                directory,
                summary,
                window_days=window_days,
                now=now,
                settings=settings,
                cancel=cancel,
            )
        except SourceUnavailableError as exc:
            log.warning("Summary path failed (%s); falling back to full scan", exc)
            validated = None
        if validated is not None:
            return validated

    return await _scan_fallback(
        directory,
        window_days=window_days,
        now=now,
        settings=settings,
        cancel=cancel,
    )


async def _validated_summary(
    directory: UserDirectory,
    summary: ExpiredSummarySource,
    *,
    window_days: int,
    now: datetime,
    settings: ScanSettings,
    cancel: CancelToken | None,
) -> ReconciliationResult | None:
    raw_rows: Sequence[ExpiredRow] | None = await summary.fetch_expired_summary(days=window_days)
    if not raw_rows:
        log.info("Expiry summary empty or unavailable for %s day(s)", window_days)
        return None

    index = await build_active_index(directory, now=now, settings=settings, cancel=cancel)
    kept = [row for row in dedupe_rows(raw_rows) if summary_row_key(row) not in index]
    dropped = len(raw_rows) - len(kept)
    if dropped:
        log.info("Dropped %s summary row(s) that are active or duplicated", dropped)
    if not kept:
        return None

    return ReconciliationResult(
        items=sort_most_recent_first(kept),
        source=ResultSource.SUMMARY,
        status=ReconciliationStatus.PARTIAL if index.truncated else ReconciliationStatus.COMPLETE,
        scanned_users=index.report.scanned,
    )


async def _scan_fallback(
    directory: UserDirectory,
    *,
    window_days: int,
    now: datetime,
    settings: ScanSettings,
    cancel: CancelToken | None,
) -> ReconciliationResult:
    try:
        scanned = await scan_expired(
            directory,
            window_days=window_days,
            now=now,
            settings=settings,
            cancel=cancel,
        )
    except SourceUnavailableError as exc:
        log.error("Expiry reconciliation unavailable: %s", exc)  # noqa: TRY400
        return ReconciliationResult(
            source=ResultSource.SCAN,
            status=ReconciliationStatus.UNAVAILABLE,
            error=str(exc),
        )

    return ReconciliationResult(
        items=scanned.rows,
        source=ResultSource.SCAN,
        status=ReconciliationStatus.PARTIAL if scanned.truncated else ReconciliationStatus.COMPLETE,
        scanned_users=scanned.report.scanned,
    )


__all__ = [
    "ReconciliationResult",
    "ReconciliationStatus",
    "ResultSource",
    "dedupe_rows",
    "reconcile_expired",
    "summary_row_key",
]
