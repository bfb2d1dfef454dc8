"""Active-entitlement index used to validate summarized expiry listings."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .identity import EntitlementKey, canonicalize
from .scanning import ScanReport, ScanSettings, UserScan
from .time_windows import is_active_at

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime, timedelta

    from .model import UserRecord
    from .ports import UserDirectory
    from .scanning import CancelToken

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ActiveIndex:
    """Every ``user:product`` pair with at least one cycle covering "now"."""

    keys: frozenset[EntitlementKey]
    report: ScanReport

    def __contains__(self, key: object) -> bool:
        return key in self.keys

    def __len__(self) -> int:
        return len(self.keys)

    @property
    def truncated(self) -> bool:
        return self.report.truncated


def active_keys_for_user(
    user: UserRecord,
    *,
    now: datetime,
    clock_skew: timedelta,
) -> Iterable[EntitlementKey]:
    for purchase in user.purchases:
        if is_active_at(purchase.ends_at, now=now, clock_skew=clock_skew):
            yield EntitlementKey(user_id=user.id, identity=canonicalize(purchase))


async def build_active_index(
    directory: UserDirectory,
    *,
    now: datetime,
    settings: ScanSettings,
    cancel: CancelToken | None = None,
) -> ActiveIndex:
    scan = UserScan(directory, settings, cancel=cancel)
    keys: set[EntitlementKey] = set()
    async for user in scan.users():
        keys.update(active_keys_for_user(user, now=now, clock_skew=settings.clock_skew))

    report = scan.report
    log.info(
        "Built active-entitlement index: keys=%s, users=%s, truncated=%s",
        len(keys),
        report.scanned,
        report.truncated,
    )
    return ActiveIndex(keys=frozenset(keys), report=report)


__all__ = ["ActiveIndex", "active_keys_for_user", "build_active_index"]
