"""Public interface for the admin API adapter."""

from __future__ import annotations

from .client import AdminApiClient, summary_endpoints
from .schema import (
    ExpiredResultOut,
    ExpiredSummaryResponse,
    PurchasePayload,
    RenewalResultOut,
    UserPayload,
    UsersResponse,
)
from .translator import (
    expired_result_out,
    parse_expired_summary,
    parse_timestamp,
    parse_user_page,
    renewal_result_out,
)

__all__ = [
    "AdminApiClient",
    "ExpiredResultOut",
    "ExpiredSummaryResponse",
    "PurchasePayload",
    "RenewalResultOut",
    "UserPayload",
    "UsersResponse",
    "expired_result_out",
    "parse_expired_summary",
    "parse_timestamp",
    "parse_user_page",
    "renewal_result_out",
]
