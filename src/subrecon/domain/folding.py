"""Collapse multiple purchase cycles of one product into its current cycle."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from .identity import ProductIdentity, canonicalize
from .time_windows import is_active_at

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime, timedelta

    from .model import PurchaseRecord


class SubscriptionStatus(StrEnum):
    ACTIVE = "active"
    EXPIRED = "expired"


@dataclass(slots=True, frozen=True, kw_only=True)
class FoldedPurchase:
    identity: ProductIdentity
    purchase: PurchaseRecord
    status: SubscriptionStatus

    @property
    def ends_at(self) -> datetime | None:
        return self.purchase.ends_at


type PurchasesByIdentity = dict[ProductIdentity, list[PurchaseRecord]]


def group_by_identity(purchases: Iterable[PurchaseRecord]) -> PurchasesByIdentity:
    """Group purchases by canonical identity, keeping first-seen order."""

    groups: PurchasesByIdentity = {}
    for purchase in purchases:
        groups.setdefault(canonicalize(purchase), []).append(purchase)
    return groups


def latest_cycle(cycles: Sequence[PurchaseRecord]) -> PurchaseRecord | None:
    """Return the cycle with the greatest ``ends_at``.

    Cycles without ``ends_at`` never win. Ties go to the cycle seen first.
    """

    latest: PurchaseRecord | None = None
    for cycle in cycles:
        if cycle.ends_at is None:
            continue
        if latest is None or latest.ends_at is None or cycle.ends_at > latest.ends_at:
            latest = cycle
    return latest


def fold_purchases(
    purchases: Iterable[PurchaseRecord],
    *,
    now: datetime,
    clock_skew: timedelta,
) -> list[FoldedPurchase]:
    folded: list[FoldedPurchase] = []
    for identity, cycles in group_by_identity(purchases).items():
        winner = latest_cycle(cycles) or cycles[0]
        status = (
            SubscriptionStatus.ACTIVE
            if is_active_at(winner.ends_at, now=now, clock_skew=clock_skew)
            else SubscriptionStatus.EXPIRED
        )
        folded.append(FoldedPurchase(identity=identity, purchase=winner, status=status))
    return folded


__all__ = [
    "FoldedPurchase",
    "PurchasesByIdentity",
    "SubscriptionStatus",
    "fold_purchases",
    "group_by_identity",
    "latest_cycle",
]
