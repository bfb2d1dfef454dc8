"""Customer-facing expiry reminders.

Only the queue is computed here: which active subscriptions end within the next few
calendar days, soonest first. Showing or sending the reminder is up to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from .folding import SubscriptionStatus, fold_purchases
from .identity import EntitlementKey, product_label

if TYPE_CHECKING:
    from collections.abc import Collection
    from datetime import datetime, timedelta

    from .model import UserRecord

DEFAULT_REMINDER_DAYS = 7
DEFAULT_DISPLAY_TIMEZONE = "Asia/Kolkata"


@dataclass(slots=True, frozen=True, kw_only=True)
class ExpiryReminder:
    id: str
    name: str
    ends_at: datetime
    days_left: int
    date_label: str


def days_until(ends_at: datetime, *, now: datetime, tz: ZoneInfo) -> int:
    """Calendar days between today and the expiry day, both taken in ``tz``."""

    return (ends_at.astimezone(tz).date() - now.astimezone(tz).date()).days


def build_reminder_queue(
    user: UserRecord,
    *,
    now: datetime,
    clock_skew: timedelta,
    max_days: int = DEFAULT_REMINDER_DAYS,
    timezone: str = DEFAULT_DISPLAY_TIMEZONE,
    seen: Collection[str] = (),
) -> list[ExpiryReminder]:
    tz = ZoneInfo(timezone)
    queue: list[ExpiryReminder] = []
    for folded in fold_purchases(user.purchases, now=now, clock_skew=clock_skew):
        ends_at = folded.ends_at
        if folded.status is not SubscriptionStatus.ACTIVE or ends_at is None:
            continue
        reminder_id = str(EntitlementKey(user_id=user.id, identity=folded.identity))
        if reminder_id in seen:
            continue
        days_left = days_until(ends_at, now=now, tz=tz)
        if not 0 <= days_left <= max_days:
            continue
        queue.append(
            ExpiryReminder(
                id=reminder_id,
                name=product_label(folded.purchase),
                ends_at=ends_at,
                days_left=days_left,
                date_label=ends_at.astimezone(tz).strftime("%a, %d %b %Y"),
            )
        )
    queue.sort(key=lambda reminder: (reminder.days_left, reminder.ends_at))
    return queue


__all__ = ["ExpiryReminder", "build_reminder_queue", "days_until"]
