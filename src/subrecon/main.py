#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from subrecon.adapters.admin_api import expired_result_out, renewal_result_out
from subrecon.app import (
    expiry_reminders_for_user,
    list_upcoming_renewals,
    reconcile_expired_subscriptions,
)
from subrecon.config import configure_logging
from subrecon.domain.display import DEFAULT_DISPLAY_ROWS, paginate
from subrecon.domain.errors import SourceUnavailableError
from subrecon.domain.reminders import DEFAULT_DISPLAY_TIMEZONE, DEFAULT_REMINDER_DAYS

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from types import FrameType

    from subrecon.domain.reconciliation import ReconciliationResult
    from subrecon.domain.reminders import ExpiryReminder
    from subrecon.domain.renewals import RenewalScan

log = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {parsed}")
    return parsed


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile customer subscriptions")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    expired = subparsers.add_parser("expired", help="Subscriptions expired without renewal")
    expired.add_argument(
        "--days",
        type=_positive_int,
        default=None,
        help="Trailing window in days (defaults to config)",
    )
    renewals = subparsers.add_parser("renewals", help="Subscription cycles ending soon")
    renewals.add_argument(
        "--days",
        type=_positive_int,
        default=None,
        help="Lookahead window in days (defaults to config)",
    )
    for sub in (expired, renewals):
        sub.add_argument(
            "--page",
            type=_positive_int,
            default=1,
            help=f"Display page of {DEFAULT_DISPLAY_ROWS} rows (default: %(default)s)",
        )
        sub.add_argument("--json", action="store_true", help="Print the full result as JSON")

    reminders = subparsers.add_parser("reminders", help="Expiry reminder queue for one user")
    reminders.add_argument("--user-id", type=str, required=True, help="User id to look up")
    reminders.add_argument(
        "--query",
        type=str,
        help="Optional search term (name, email or phone) to narrow the user lookup",
    )
    reminders.add_argument(
        "--max-days",
        type=int,
        default=DEFAULT_REMINDER_DAYS,
        help="Remind about subscriptions ending within this many days (default: %(default)s)",
    )
    reminders.add_argument(
        "--timezone",
        type=str,
        default=DEFAULT_DISPLAY_TIMEZONE,
        help="Timezone used for calendar days and labels (default: %(default)s)",
    )

    return parser.parse_args(list(argv))


def _fmt(value: datetime | None) -> str:
    return value.isoformat(timespec="minutes") if value is not None else "-"


def _print_expired(result: ReconciliationResult, *, page: int, as_json: bool) -> None:
    if as_json:
        print(expired_result_out(result).model_dump_json(by_alias=True, indent=2))
        return
    print(f"source: {result.source} status: {result.status} scanned_users: {result.scanned_users}")
    if not result.available:
        print(f"Reconciliation failed: {result.error}")
        return
    if result.truncated:
        print("Warning: scan cap reached, results may be incomplete.")
    if not result.items:
        print("No expired subscriptions found.")
        return
    window = paginate(result.items, page)
    for row in window.items:
        contact = row.user.email or row.user.phone or "-"
        who = row.user.name or row.user.id
        print(f"{_fmt(row.ends_at)}  {row.product.name:<30}  {who}  {contact}")
    print(f"page {window.page} ({window.total} rows, next={window.has_next})")


def _print_renewals(scan: RenewalScan, *, page: int, days: int | None, as_json: bool) -> None:
    if as_json:
        print(renewal_result_out(scan).model_dump_json(by_alias=True, indent=2))
        return
    if scan.truncated:
        print("Warning: scan cap reached, results may be incomplete.")
    if not scan.rows:
        print(f"No renewals within {days if days is not None else 'the configured'} day(s).")
        return
    window = paginate(scan.rows, page)
    for row in window.items:
        print(f"{_fmt(row.ends_at)}  {row.product.name:<30}  {row.user.name or row.user.id}")
    print(f"page {window.page} ({window.total} rows, next={window.has_next})")


def _print_reminders(reminders: list[ExpiryReminder]) -> None:
    if not reminders:
        print("No upcoming expiries to remind about.")
        return
    for reminder in reminders:
        print(f"{reminder.name}: {reminder.days_left} day(s) left, ends {reminder.date_label}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "expired":
            result = reconcile_expired_subscriptions(window_days=parsed_args.days)
            _print_expired(result, page=parsed_args.page, as_json=parsed_args.json)
            if not result.available:
                sys.exit(1)
        elif parsed_args.command == "renewals":
            scan = list_upcoming_renewals(window_days=parsed_args.days)
            _print_renewals(
                scan, page=parsed_args.page, days=parsed_args.days, as_json=parsed_args.json
            )
        elif parsed_args.command == "reminders":
            if parsed_args.max_days < 0:
                raise ValueError("--max-days must be non-negative")  # noqa: TRY301
            reminders = expiry_reminders_for_user(
                parsed_args.user_id,
                query=parsed_args.query,
                max_days=parsed_args.max_days,
                timezone=parsed_args.timezone,
            )
            _print_reminders(reminders)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (ValueError, LookupError):
        log.exception("Invalid request")
        sys.exit(2)
    except SourceUnavailableError:
        log.exception("Reconciliation unavailable")
        sys.exit(1)
    except Exception:
        log.exception("Fatal error during reconciliation")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
