"""Reconciliation tuning values."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from subrecon.domain.scanning import (
    DEFAULT_CLOCK_SKEW,
    DEFAULT_MAX_SCAN_USERS,
    DEFAULT_SCAN_PAGE_SIZE,
    ScanSettings,
)

from .env import optional_int_env

DEFAULT_EXPIRED_WINDOW_DAYS = 10
DEFAULT_RENEWAL_WINDOW_DAYS = 14


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    expired_window_days: int = DEFAULT_EXPIRED_WINDOW_DAYS
    renewal_window_days: int = DEFAULT_RENEWAL_WINDOW_DAYS
    scan: ScanSettings = field(default_factory=ScanSettings)


def get_reconciliation_config() -> ReconciliationConfig:
    scan = ScanSettings(
        page_size=optional_int_env("SUBRECON_SCAN_PAGE_SIZE", DEFAULT_SCAN_PAGE_SIZE, minimum=1),
        max_scan_users=optional_int_env(
            "SUBRECON_MAX_SCAN_USERS", DEFAULT_MAX_SCAN_USERS, minimum=1
        ),
        clock_skew=timedelta(
            milliseconds=optional_int_env(
                "SUBRECON_CLOCK_SKEW_MS",
                int(DEFAULT_CLOCK_SKEW.total_seconds() * 1000),
            )
        ),
        concurrency=optional_int_env("SUBRECON_SCAN_CONCURRENCY", 1, minimum=1),
    )
    return ReconciliationConfig(
        expired_window_days=optional_int_env(
            "SUBRECON_EXPIRED_WINDOW_DAYS", DEFAULT_EXPIRED_WINDOW_DAYS, minimum=1
        ),
        renewal_window_days=optional_int_env(
            "SUBRECON_RENEWAL_WINDOW_DAYS", DEFAULT_RENEWAL_WINDOW_DAYS, minimum=1
        ),
        scan=scan,
    )
