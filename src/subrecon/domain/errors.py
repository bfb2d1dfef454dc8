"""Domain error definitions for subscription reconciliation."""

from __future__ import annotations


class ReconciliationError(RuntimeError):
    """Base class for reconciliation failures."""


class SourceUnavailableError(ReconciliationError):
    """Raised when a paginated source fails to deliver a usable page."""

    def __init__(self, message: str, *, page: int | None = None) -> None:
        super().__init__(message)
        self.page = page


class ScanCancelledError(ReconciliationError):
    """Raised when a scan is cancelled between page fetches."""


__all__ = ["ReconciliationError", "ScanCancelledError", "SourceUnavailableError"]
