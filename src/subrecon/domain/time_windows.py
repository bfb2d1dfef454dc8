"""Time windows used to bound expiry and renewal queries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

DAY = timedelta(days=1)


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError("Timestamps must include timezone information")
    return value.astimezone(UTC)


def active_cutoff(now: datetime, clock_skew: timedelta) -> datetime:
    """Cycles ending after this instant still count as active."""

    return now - clock_skew


def is_active_at(ends_at: datetime | None, *, now: datetime, clock_skew: timedelta) -> bool:
    return ends_at is not None and ends_at > active_cutoff(now, clock_skew)


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Closed-start window ``[start, end]``; ``include_end`` controls the upper bound."""

    start: datetime
    end: datetime
    include_end: bool = True

    def __post_init__(self) -> None:
        ensure_aware(self.start)
        ensure_aware(self.end)
        if self.start > self.end:
            raise ValueError("Time window start must be before end")

    @classmethod
    def trailing(cls, days: int, *, now: datetime) -> TimeWindow:
        """``[now - days, now)``: something that ended here ended in the past."""

        if days < 0:
            raise ValueError("Window days must be non-negative")
        return cls(start=now - days * DAY, end=now, include_end=False)

    @classmethod
    def leading(cls, days: int, *, now: datetime) -> TimeWindow:
        """``[now, now + days]``."""

        if days < 0:
            raise ValueError("Window days must be non-negative")
        return cls(start=now, end=now + days * DAY, include_end=True)

    def contains(self, value: datetime | None) -> bool:
        if value is None or value < self.start:
            return False
        if self.include_end:
            return value <= self.end
        return value < self.end


__all__ = ["DAY", "Clock", "TimeWindow", "active_cutoff", "ensure_aware", "is_active_at", "utcnow"]
