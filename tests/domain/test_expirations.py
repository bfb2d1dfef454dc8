from __future__ import annotations

import asyncio
from datetime import timedelta

from subrecon.domain.expirations import (
    expired_rows_for_user,
    scan_expired,
    sort_most_recent_first,
)
from subrecon.domain.folding import SubscriptionStatus
from subrecon.domain.scanning import ScanSettings
from subrecon.domain.time_windows import TimeWindow
from tests.support.directory import (
    NOW,
    FakeUserDirectory,
    days_ago,
    days_ahead,
    make_purchase,
    make_summary_row,
    make_user,
)

SKEW = timedelta(seconds=30)
WINDOW = TimeWindow.trailing(10, now=NOW)


def test_reports_latest_cycle_only_once() -> None:
    user = make_user(
        "u1",
        make_purchase("FNO Khazana", ends_at=days_ago(10)),
        make_purchase("FNO Khazana", ends_at=days_ago(2)),
    )

    rows = expired_rows_for_user(user, window=WINDOW, now=NOW, clock_skew=SKEW)

    assert len(rows) == 1
    (row,) = rows
    assert row.id == "u1:fno_khazana"
    assert row.ends_at == days_ago(2)
    assert row.status is SubscriptionStatus.EXPIRED
    assert row.product.name == "FNO Khazana"
    assert row.product.key == "fno_khazana"
    assert row.user.id == "u1"


def test_renewed_product_is_never_expired() -> None:
    user = make_user(
        "u1",
        make_purchase("FNO Khazana", key="fno-khazana", ends_at=days_ago(3)),
        make_purchase("FNO Khazana", key="FNO_KHAZANA_V2", ends_at=days_ahead(27)),
    )

    assert expired_rows_for_user(user, window=WINDOW, now=NOW, clock_skew=SKEW) == []


def test_cycle_ending_within_clock_skew_still_counts_as_active() -> None:
    user = make_user("u1", make_purchase("Journaling", ends_at=NOW - timedelta(seconds=5)))

    assert expired_rows_for_user(user, window=WINDOW, now=NOW, clock_skew=SKEW) == []


def test_expiry_outside_window_is_ignored() -> None:
    user = make_user(
        "u1",
        make_purchase("Journaling", ends_at=days_ago(11)),
        make_purchase("Option Buying", ends_at=days_ago(10)),
    )

    rows = expired_rows_for_user(user, window=WINDOW, now=NOW, clock_skew=SKEW)

    assert [row.id for row in rows] == ["u1:option_buying"]


def test_products_without_end_dates_are_skipped() -> None:
    user = make_user("u1", make_purchase("Journaling", ends_at=None))

    assert expired_rows_for_user(user, window=WINDOW, now=NOW, clock_skew=SKEW) == []


def test_sort_most_recent_first_puts_undated_last() -> None:
    undated = make_summary_row("u1", "Alpha", ends_at=None)
    older = make_summary_row("u2", "Beta", ends_at=days_ago(5))
    newer = make_summary_row("u3", "Gamma", ends_at=days_ago(1))

    assert sort_most_recent_first([undated, older, newer]) == [newer, older, undated]


def test_scan_expired_collects_rows_across_pages() -> None:
    directory = FakeUserDirectory(
        [
            make_user("u1", make_purchase("Journaling", ends_at=days_ago(4))),
            make_user("u2", make_purchase("Journaling", ends_at=days_ahead(4))),
            make_user("u3", make_purchase("FNO Khazana", ends_at=days_ago(1))),
        ]
    )

    result = asyncio.run(
        scan_expired(directory, window_days=10, now=NOW, settings=ScanSettings(page_size=2))
    )

    assert [row.id for row in result.rows] == ["u3:fno_khazana", "u1:journaling"]
    assert result.report.scanned == 3
    assert not result.truncated


def test_scan_expired_with_cap_is_truncated() -> None:
    directory = FakeUserDirectory(
        [make_user(f"u{index}", make_purchase(ends_at=days_ago(1))) for index in range(1, 4)]
    )

    result = asyncio.run(
        scan_expired(
            directory,
            window_days=10,
            now=NOW,
            settings=ScanSettings(page_size=100, max_scan_users=1),
        )
    )

    assert result.report.scanned == 1
    assert [row.user.id for row in result.rows] == ["u1"]
    assert result.truncated
