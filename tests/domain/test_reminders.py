from __future__ import annotations

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from subrecon.domain.reminders import build_reminder_queue, days_until
from tests.support.directory import NOW, days_ago, days_ahead, make_purchase, make_user

SKEW = timedelta(seconds=30)
IST = ZoneInfo("Asia/Kolkata")


def test_days_until_counts_calendar_days_in_timezone() -> None:
    now = datetime(2025, 6, 15, 17, tzinfo=UTC)  # 22:30 IST
    ends_at = datetime(2025, 6, 15, 20, tzinfo=UTC)  # 01:30 IST next day

    assert days_until(ends_at, now=now, tz=IST) == 1
    assert days_until(ends_at, now=now, tz=ZoneInfo("UTC")) == 0


def test_queue_lists_active_products_ending_soon() -> None:
    user = make_user(
        "u1",
        make_purchase("Journaling", ends_at=days_ahead(5)),
        make_purchase("FNO Khazana", ends_at=days_ahead(1)),
        make_purchase("Option Buying", ends_at=days_ahead(30)),
        make_purchase("Swing Trading", ends_at=days_ago(1)),
    )

    queue = build_reminder_queue(user, now=NOW, clock_skew=SKEW)

    assert [reminder.name for reminder in queue] == ["FNO Khazana", "Journaling"]
    assert [reminder.days_left for reminder in queue] == [1, 5]
    assert queue[0].id == "u1:fno_khazana"


def test_queue_uses_latest_cycle_per_product() -> None:
    user = make_user(
        "u1",
        make_purchase("Journaling", ends_at=days_ahead(2)),
        make_purchase("Journaling", ends_at=days_ahead(32)),
    )

    assert build_reminder_queue(user, now=NOW, clock_skew=SKEW) == []


def test_queue_skips_already_seen_reminders() -> None:
    user = make_user("u1", make_purchase("Journaling", ends_at=days_ahead(2)))

    queue = build_reminder_queue(user, now=NOW, clock_skew=SKEW, seen={"u1:journaling"})

    assert queue == []


def test_queue_formats_date_label_in_display_timezone() -> None:
    ends_at = datetime(2025, 6, 18, 20, tzinfo=UTC)  # Thu 19 Jun 01:30 IST
    user = make_user("u1", make_purchase("Journaling", ends_at=ends_at))

    (reminder,) = build_reminder_queue(user, now=NOW, clock_skew=SKEW)

    assert reminder.date_label == "Thu, 19 Jun 2025"
    assert reminder.days_left == 4
