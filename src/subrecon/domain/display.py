"""Fixed-size display windows for admin tables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

DEFAULT_DISPLAY_ROWS = 5


@dataclass(frozen=True)
class DisplayPage[T]:
    items: list[T]
    page: int
    page_size: int
    total: int

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total


def paginate[T](
    items: Sequence[T],
    page: int = 1,
    page_size: int = DEFAULT_DISPLAY_ROWS,
) -> DisplayPage[T]:
    if page < 1:
        raise ValueError("Page numbers start at 1")
    if page_size < 1:
        raise ValueError("Page size must be positive")
    start = (page - 1) * page_size
    return DisplayPage(
        items=list(items[start : start + page_size]),
        page=page,
        page_size=page_size,
        total=len(items),
    )


__all__ = ["DEFAULT_DISPLAY_ROWS", "DisplayPage", "paginate"]
