from __future__ import annotations

import json

import pytest

from subrecon import main as main_module
from subrecon.domain.errors import SourceUnavailableError
from subrecon.domain.reconciliation import (
    ReconciliationResult,
    ReconciliationStatus,
    ResultSource,
)
from subrecon.domain.reminders import (
    DEFAULT_DISPLAY_TIMEZONE,
    DEFAULT_REMINDER_DAYS,
    ExpiryReminder,
)
from subrecon.domain.renewals import RenewalScan
from subrecon.domain.scanning import ScanReport, StopReason
from tests.support.directory import days_ago, days_ahead, make_summary_row


def _result(**overrides: object) -> ReconciliationResult:
    values: dict[str, object] = {
        "items": [
            make_summary_row(f"u{index}", "Journaling", ends_at=days_ago(1)) for index in range(7)
        ],
        "source": ResultSource.SCAN,
        "status": ReconciliationStatus.COMPLETE,
        "scanned_users": 7,
    }
    values.update(overrides)
    return ReconciliationResult(**values)  # type: ignore[arg-type]


def test_expired_defaults(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    captured: dict[str, object] = {}

    def fake_reconcile(**kwargs: object) -> ReconciliationResult:
        captured.update(kwargs)
        return _result()

    monkeypatch.setattr(main_module, "reconcile_expired_subscriptions", fake_reconcile)

    main_module.main(["expired"])

    assert captured == {"window_days": None}
    out = capsys.readouterr().out
    assert "source: scan status: complete" in out
    assert "page 1 (7 rows, next=True)" in out
    assert out.count("Journaling") == 5


def test_expired_json_and_page(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    captured: dict[str, object] = {}

    def fake_reconcile(**kwargs: object) -> ReconciliationResult:
        captured.update(kwargs)
        return _result()

    monkeypatch.setattr(main_module, "reconcile_expired_subscriptions", fake_reconcile)

    main_module.main(["expired", "--days", "7", "--json"])

    assert captured["window_days"] == 7
    payload = json.loads(capsys.readouterr().out)
    assert payload["source"] == "scan"
    assert payload["scannedUsers"] == 7
    assert len(payload["items"]) == 7


def test_expired_distinguishes_empty_from_failed(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr(
        main_module, "reconcile_expired_subscriptions", lambda **_: _result(items=[])
    )
    main_module.main(["expired"])
    assert "No expired subscriptions found." in capsys.readouterr().out

    monkeypatch.setattr(
        main_module,
        "reconcile_expired_subscriptions",
        lambda **_: _result(
            items=[], status=ReconciliationStatus.UNAVAILABLE, error="page 3 failed"
        ),
    )
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["expired"])

    assert excinfo.value.code == 1
    out = capsys.readouterr().out
    assert "Reconciliation failed: page 3 failed" in out
    assert "No expired subscriptions found." not in out


def test_expired_warns_when_partial(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr(
        main_module,
        "reconcile_expired_subscriptions",
        lambda **_: _result(status=ReconciliationStatus.PARTIAL),
    )

    main_module.main(["expired"])

    assert "scan cap reached" in capsys.readouterr().out


def test_renewals(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    captured: dict[str, object] = {}

    def fake_renewals(**kwargs: object) -> RenewalScan:
        captured.update(kwargs)
        return RenewalScan(
            rows=[],
            report=ScanReport(
                scanned=0, total=0, pages=1, truncated=False, stop_reason=StopReason.EMPTY_PAGE
            ),
        )

    monkeypatch.setattr(main_module, "list_upcoming_renewals", fake_renewals)

    main_module.main(["renewals", "--days", "30"])

    assert captured == {"window_days": 30}
    assert "No renewals within 30 day(s)." in capsys.readouterr().out


def test_reminders(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    captured: dict[str, object] = {}

    def fake_reminders(user_id: str, **kwargs: object) -> list[ExpiryReminder]:
        captured.update(kwargs, user_id=user_id)
        return [
            ExpiryReminder(
                id=f"{user_id}:journaling",
                name="Journaling",
                ends_at=days_ahead(2),
                days_left=2,
                date_label="Tue, 17 Jun 2025",
            )
        ]

    monkeypatch.setattr(main_module, "expiry_reminders_for_user", fake_reminders)

    main_module.main(["reminders", "--user-id", "u1"])

    assert captured == {
        "user_id": "u1",
        "query": None,
        "max_days": DEFAULT_REMINDER_DAYS,
        "timezone": DEFAULT_DISPLAY_TIMEZONE,
    }
    assert "Journaling: 2 day(s) left, ends Tue, 17 Jun 2025" in capsys.readouterr().out


def test_unknown_user_exits_with_usage_code(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_reminders(user_id: str, **_: object) -> list[ExpiryReminder]:
        raise LookupError(f"User {user_id} not found")

    monkeypatch.setattr(main_module, "expiry_reminders_for_user", fake_reminders)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["reminders", "--user-id", "nobody"])

    assert excinfo.value.code == 2


def test_source_failure_exits_with_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_renewals(**_: object) -> RenewalScan:
        raise SourceUnavailableError("page 2 failed", page=2)

    monkeypatch.setattr(main_module, "list_upcoming_renewals", fake_renewals)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["renewals"])

    assert excinfo.value.code == 1


def test_invalid_days_is_rejected_by_argparse() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["expired", "--days", "0"])

    assert excinfo.value.code == 2
