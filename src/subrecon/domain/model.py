"""Records describing users and their product purchase cycles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(slots=True, frozen=True, kw_only=True)
class PurchaseRecord:
    """One purchase cycle as reported by the billing system.

    ``status`` is kept for display only. Whether a cycle is active is always derived
    from ``ends_at``.
    """

    id: str
    product_id: str | None = None
    product_key: str | None = None
    product_name: str | None = None
    status: str | None = None
    started_at: datetime | None = None
    ends_at: datetime | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class UserRecord:
    id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    role: str | None = None
    purchases: tuple[PurchaseRecord, ...] = field(default_factory=tuple)


@dataclass(slots=True, frozen=True, kw_only=True)
class UserSummary:
    """Denormalized user fields carried on result rows."""

    id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None

    @classmethod
    def of(cls, user: UserRecord) -> UserSummary:
        return cls(id=user.id, name=user.name, email=user.email, phone=user.phone)


@dataclass(slots=True, frozen=True, kw_only=True)
class ProductSummary:
    id: str
    name: str
    key: str | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class UserPage:
    """One page of the paginated user listing.

    ``skipped`` counts records the adapter dropped as malformed, so a page made only
    of bad records is not mistaken for the end of the listing.
    """

    items: tuple[UserRecord, ...]
    page: int
    page_size: int | None = None
    total: int | None = None
    skipped: int = 0


__all__ = ["ProductSummary", "PurchaseRecord", "UserPage", "UserRecord", "UserSummary"]
