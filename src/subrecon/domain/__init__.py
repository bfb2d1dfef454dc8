"""Subscription lifecycle reconciliation domain."""

from __future__ import annotations

from .entitlements import ActiveIndex, build_active_index
from .errors import ReconciliationError, ScanCancelledError, SourceUnavailableError
from .expirations import ExpiredRow, ExpiredScan, scan_expired
from .folding import FoldedPurchase, SubscriptionStatus, fold_purchases
from .identity import EntitlementKey, ProductIdentity, canonicalize
from .model import ProductSummary, PurchaseRecord, UserPage, UserRecord, UserSummary
from .ports import ExpiredSummarySource, UserDirectory
from .reconciliation import (
    ReconciliationResult,
    ReconciliationStatus,
    ResultSource,
    reconcile_expired,
)
from .renewals import RenewalRow, RenewalScan, upcoming_renewals
from .scanning import CancelToken, ScanReport, ScanSettings

__all__ = [
    "ActiveIndex",
    "CancelToken",
    "EntitlementKey",
    "ExpiredRow",
    "ExpiredScan",
    "ExpiredSummarySource",
    "FoldedPurchase",
    "ProductIdentity",
    "ProductSummary",
    "PurchaseRecord",
    "ReconciliationError",
    "ReconciliationResult",
    "ReconciliationStatus",
    "RenewalRow",
    "RenewalScan",
    "ResultSource",
    "ScanCancelledError",
    "ScanReport",
    "ScanSettings",
    "SourceUnavailableError",
    "SubscriptionStatus",
    "UserDirectory",
    "UserPage",
    "UserRecord",
    "UserSummary",
    "build_active_index",
    "canonicalize",
    "fold_purchases",
    "reconcile_expired",
    "scan_expired",
    "upcoming_renewals",
]
