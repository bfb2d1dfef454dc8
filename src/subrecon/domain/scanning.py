"""Bounded pagination over the user directory.

The scan is an explicit state machine (fetch, accumulate, decide) so that the page
cap, the frozen ``total`` and the stop-on-empty-page rule can be tested on their own.
``UserScan`` drives it against a ``UserDirectory`` one page at a time, or a few pages
at a time when fan-out is enabled.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import ScanCancelledError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from .model import UserPage, UserRecord
    from .ports import UserDirectory

log = getLogger(__name__)

DEFAULT_SCAN_PAGE_SIZE = 100
DEFAULT_MAX_SCAN_USERS = 1000
DEFAULT_CLOCK_SKEW = timedelta(seconds=30)


@dataclass(frozen=True, slots=True)
class ScanSettings:
    page_size: int = DEFAULT_SCAN_PAGE_SIZE
    max_scan_users: int = DEFAULT_MAX_SCAN_USERS
    clock_skew: timedelta = DEFAULT_CLOCK_SKEW
    concurrency: int = 1

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError("Scan page size must be positive")
        if self.max_scan_users < 1:
            raise ValueError("Max scan users must be positive")
        if self.clock_skew < timedelta(0):
            raise ValueError("Clock skew must be non-negative")
        if self.concurrency < 1:
            raise ValueError("Scan concurrency must be at least 1")


class CancelToken:
    """Cooperative cancellation flag checked before every page request."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ScanCancelledError("Scan cancelled")


class ScanPhase(StrEnum):
    FETCH = "fetch"
    DONE = "done"


class StopReason(StrEnum):
    EXHAUSTED = "exhausted"
    EMPTY_PAGE = "empty_page"
    CAP_REACHED = "cap_reached"


@dataclass(slots=True)
class ScanState:
    page_size: int
    max_users: int
    page: int = 1
    total: int | None = None
    scanned: int = 0
    phase: ScanPhase = ScanPhase.FETCH
    stop_reason: StopReason | None = None

    def next_page(self) -> int | None:
        return self.page if self.phase is ScanPhase.FETCH else None

    def pending_pages(self, limit: int) -> list[int]:
        """Pages that may be fetched ahead, in ascending order.

        Only meaningful once ``total`` is known; before that a single page is offered.
        """

        if self.phase is not ScanPhase.FETCH:
            return []
        if self.total is None:
            return [self.page]
        last_by_total = math.ceil(self.total / self.page_size)
        pages_for_cap = math.ceil((self.max_users - self.scanned) / self.page_size)
        last = min(last_by_total, self.page - 1 + pages_for_cap)
        return list(range(self.page, min(last, self.page + limit - 1) + 1))

    def accept(self, page: UserPage) -> tuple[UserRecord, ...]:
        """Take in one fetched page and return the users to process from it."""

        if self.phase is not ScanPhase.FETCH:
            raise RuntimeError("Scan already finished")
        if self.total is None:
            self.total = page.total if page.total is not None else len(page.items)
        if page.page_size:
            self.page_size = page.page_size

        room = max(self.max_users - self.scanned, 0)
        accepted = page.items[:room]
        self.scanned += len(accepted)
        self.page += 1
        self._decide(
            fetched=len(page.items) + page.skipped,
            cut=len(accepted) < len(page.items),
        )
        return accepted

    def _decide(self, *, fetched: int, cut: bool) -> None:
        total = self.total or 0
        more_remaining = cut or (self.page - 1) * self.page_size < total
        if fetched == 0:
            self._stop(StopReason.EMPTY_PAGE)
        elif self.scanned >= self.max_users and more_remaining:
            self._stop(StopReason.CAP_REACHED)
        elif not more_remaining:
            self._stop(StopReason.EXHAUSTED)

    def _stop(self, reason: StopReason) -> None:
        self.phase = ScanPhase.DONE
        self.stop_reason = reason

    @property
    def truncated(self) -> bool:
        return self.stop_reason is StopReason.CAP_REACHED


@dataclass(slots=True, frozen=True)
class ScanReport:
    scanned: int
    total: int | None
    pages: int
    truncated: bool
    stop_reason: StopReason | None

    @classmethod
    def of(cls, state: ScanState) -> ScanReport:
        return cls(
            scanned=state.scanned,
            total=state.total,
            pages=state.page - 1,
            truncated=state.truncated,
            stop_reason=state.stop_reason,
        )


class UserScan:
    def __init__(
        self,
        directory: UserDirectory,
        settings: ScanSettings,
        *,
        cancel: CancelToken | None = None,
        query: str | None = None,
    ) -> None:
        self._directory = directory
        self._settings = settings
        self._cancel = cancel or CancelToken()
        self._query = query
        self.state = ScanState(page_size=settings.page_size, max_users=settings.max_scan_users)

    @property
    def report(self) -> ScanReport:
        return ScanReport.of(self.state)

    async def users(self) -> AsyncIterator[UserRecord]:
        if self._settings.concurrency > 1:
            async for user in self._fan_out_users():
                yield user
            return

        while (page_number := self.state.next_page()) is not None:
            page = await self._fetch(page_number)
            for user in self.state.accept(page):
                yield user

        self._log_finish()

    async def _fan_out_users(self) -> AsyncIterator[UserRecord]:
        # page 1 freezes ``total`` before any concurrent request is issued
        first = await self._fetch(1)
        for user in self.state.accept(first):
            yield user

        while batch := self.state.pending_pages(self._settings.concurrency):
            pages = await self._fetch_many(batch)
            for page in pages:
                if self.state.phase is not ScanPhase.FETCH:
                    break
                for user in self.state.accept(page):
                    yield user

        self._log_finish()

    async def _fetch_many(self, page_numbers: list[int]) -> list[UserPage]:
        self._cancel.raise_if_cancelled()
        tasks = [
            asyncio.create_task(self._request(number, self.state.page_size))
            for number in page_numbers
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _fetch(self, page_number: int) -> UserPage:
        self._cancel.raise_if_cancelled()
        return await self._request(page_number, self.state.page_size)

    async def _request(self, page_number: int, page_size: int) -> UserPage:
        log.debug("Fetching user page %s (page_size=%s)", page_number, page_size)
        return await self._directory.list_users(
            page=page_number,
            page_size=page_size,
            query=self._query,
        )

    def _log_finish(self) -> None:
        report = self.report
        if report.truncated:
            log.warning(
                "User scan stopped at the cap: scanned=%s of total=%s (max_scan_users=%s)",
                report.scanned,
                report.total,
                self._settings.max_scan_users,
            )
        else:
            log.debug(
                "User scan finished: scanned=%s, pages=%s, reason=%s",
                report.scanned,
                report.pages,
                report.stop_reason,
            )


__all__ = [
    "DEFAULT_CLOCK_SKEW",
    "DEFAULT_MAX_SCAN_USERS",
    "DEFAULT_SCAN_PAGE_SIZE",
    "CancelToken",
    "ScanPhase",
    "ScanReport",
    "ScanSettings",
    "ScanState",
    "StopReason",
    "UserScan",
]
