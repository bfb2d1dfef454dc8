"""Translate admin API payloads into domain records and back."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from subrecon.domain.expirations import ExpiredRow
from subrecon.domain.identity import EntitlementKey, first_label, identity_for_label
from subrecon.domain.model import (
    ProductSummary,
    PurchaseRecord,
    UserPage,
    UserRecord,
    UserSummary,
)

from .schema import (
    ExpiredResultOut,
    ExpiredRowOut,
    ExpiredRowPayload,
    ExpiredSummaryResponse,
    ProductOut,
    PurchasePayload,
    RenewalResultOut,
    RenewalRowOut,
    Timestamp,
    UserOut,
    UserPayload,
    UsersResponse,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from subrecon.domain.reconciliation import ReconciliationResult
    from subrecon.domain.renewals import RenewalRow, RenewalScan

log = getLogger(__name__)


def parse_timestamp(value: Timestamp) -> datetime | None:
    """Parse ISO-8601 strings or epoch milliseconds; ``None`` when unusable."""

    if value is None:
        return None
    if isinstance(value, int | float):
        return _from_epoch_ms(value)
    text = value.strip()
    if text.isascii() and text.lstrip("-").isdigit():
        return _from_epoch_ms(int(text))
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _from_epoch_ms(value: float) -> datetime | None:
    try:
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def _parse_record_timestamp(value: Timestamp, *, field: str, record_id: str) -> datetime | None:
    parsed = parse_timestamp(value)
    if parsed is None and value is not None:
        log.warning("Unparsable %s %r on purchase %s; treating as missing", field, value, record_id)
    return parsed


def parse_purchase(raw: object) -> PurchaseRecord | None:
    try:
        payload = PurchasePayload.model_validate(raw)
    except ValidationError as exc:
        log.warning("Skipping malformed purchase record: %s", exc.errors(include_url=False))
        return None
    return PurchaseRecord(
        id=payload.id,
        product_id=payload.product_id,
        product_key=payload.product_key,
        product_name=payload.product_name,
        status=payload.status,
        started_at=_parse_record_timestamp(
            payload.started_at, field="startedAt", record_id=payload.id
        ),
        ends_at=_parse_record_timestamp(payload.ends_at, field="endsAt", record_id=payload.id),
    )


def parse_user(raw: object) -> UserRecord | None:
    try:
        payload = UserPayload.model_validate(raw)
    except ValidationError as exc:
        log.warning("Skipping malformed user record: %s", exc.errors(include_url=False))
        return None
    purchases = tuple(
        purchase
        for purchase in (parse_purchase(item) for item in payload.purchases)
        if purchase is not None
    )
    return UserRecord(
        id=payload.id,
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        role=payload.role,
        purchases=purchases,
    )


def parse_user_page(response: UsersResponse, *, requested_page: int) -> UserPage:
    users = tuple(
        user for user in (parse_user(item) for item in response.items) if user is not None
    )
    skipped = len(response.items) - len(users)
    if skipped:
        log.warning("Skipped %s malformed user(s) on page %s", skipped, requested_page)
    return UserPage(
        items=users,
        page=response.page or requested_page,
        page_size=response.page_size,
        total=response.total,
        skipped=skipped,
    )


def parse_expired_row(raw: Mapping[str, object]) -> ExpiredRow | None:
    try:
        payload = ExpiredRowPayload.model_validate(raw)
    except ValidationError as exc:
        log.warning("Skipping malformed summary row: %s", exc.errors(include_url=False))
        return None
    if not payload.user.id:
        log.warning("Skipping summary row %s without a user id", payload.id)
        return None

    product = payload.product
    label = first_label((product.name, product.key, product.id))
    identity = identity_for_label(label)
    return ExpiredRow(
        key=EntitlementKey(user_id=payload.user.id, identity=identity),
        ends_at=parse_timestamp(payload.ends_at),
        user=UserSummary(
            id=payload.user.id,
            name=payload.user.name,
            email=payload.user.email,
            phone=payload.user.phone,
        ),
        product=ProductSummary(id=product.id or identity.slug, key=product.key, name=label),
    )


def parse_expired_summary(response: ExpiredSummaryResponse) -> list[ExpiredRow]:
    return [row for row in (parse_expired_row(item) for item in response.items) if row is not None]


def _user_out(user: UserSummary) -> UserOut:
    return UserOut(id=user.id, name=user.name, email=user.email, phone=user.phone)


def _product_out(product: ProductSummary) -> ProductOut:
    return ProductOut(id=product.id, key=product.key, name=product.name)


def expired_row_out(row: ExpiredRow) -> ExpiredRowOut:
    return ExpiredRowOut(
        id=str(row.key),
        ends_at=row.ends_at,
        status=row.status.value,
        user=_user_out(row.user),
        product=_product_out(row.product),
    )


def renewal_row_out(row: RenewalRow) -> RenewalRowOut:
    return RenewalRowOut(
        id=row.id,
        ends_at=row.ends_at,
        status=row.status,
        user=_user_out(row.user),
        product=_product_out(row.product),
    )


def expired_result_out(result: ReconciliationResult) -> ExpiredResultOut:
    return ExpiredResultOut(
        items=[expired_row_out(row) for row in result.items],
        source=result.source.value,
        status=result.status.value,
        truncated=result.truncated,
        scanned_users=result.scanned_users,
        error=result.error,
    )


def renewal_result_out(scan: RenewalScan) -> RenewalResultOut:
    return RenewalResultOut(
        items=[renewal_row_out(row) for row in scan.rows],
        truncated=scan.truncated,
    )
