"""Ports for the external systems the reconciliation engine reads from."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .expirations import ExpiredRow
    from .model import UserPage


@runtime_checkable
class UserDirectory(Protocol):
    """Paginated, 1-indexed listing of users with their purchases."""

    async def list_users(
        self,
        *,
        page: int,
        page_size: int,
        query: str | None = None,
    ) -> UserPage: ...


@runtime_checkable
class ExpiredSummarySource(Protocol):
    """Best-effort pre-aggregated "expired without renewal" listing.

    Returns ``None`` when no summary is available. Unavailability is not an error.
    """

    async def fetch_expired_summary(self, *, days: int) -> Sequence[ExpiredRow] | None: ...


__all__ = ["ExpiredSummarySource", "UserDirectory"]
