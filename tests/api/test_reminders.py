from datetime import date, datetime, timedelta, timezone

import pytest

from spinbook.domain.reminders.service import reminder_target_date


@pytest.fixture
def cron_secret(monkeypatch):
    monkeypatch.setattr("spinbook.domain.reminders.router.CRON_SECRET", "cron-secret")
    return {"Authorization": "Bearer cron-secret"}


def _due_date() -> date:
    return datetime.now(timezone.utc).date() + timedelta(days=7)


def test_not_configured(client, monkeypatch):
    monkeypatch.setattr("spinbook.domain.reminders.router.CRON_SECRET", None)
    assert client.get("/api/cron/balance-reminder").status_code == 500


def test_wrong_bearer(client, cron_secret):
    response = client.get(
        "/api/cron/balance-reminder", headers={"Authorization": "Bearer nope"}
    )
    assert response.status_code == 401


def test_sends_to_client_and_dj(client, db, dj, make_booking, cron_secret, sent_emails):
    due = make_booking(dj, deposit_paid=True, event_date=_due_date(), quoted_total=1000)
    make_booking(dj, deposit_paid=False, event_date=_due_date())
    make_booking(dj, deposit_paid=True, event_date=_due_date() + timedelta(days=1))

    response = client.get("/api/cron/balance-reminder", headers=cron_secret)

    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "target": _due_date().isoformat(),
        "sent": 1,
        "skipped": 0,
        "failed": 0,
    }
    assert [e["to"] for e in sent_emails] == ["ada@example.com", "nova@example.com"]
    assert sent_emails[0]["subject"] == "Reminder: balance due in 7 days for your DJ booking"
    assert sent_emails[1]["subject"] == "Reminder: balance due in 7 days (booking)"
    db.refresh(due)
    assert due.balance_reminder_sent_at is not None


def test_already_reminded_is_not_selected(client, dj, make_booking, cron_secret, sent_emails):
    make_booking(
        dj,
        deposit_paid=True,
        event_date=_due_date(),
        balance_reminder_sent_at=datetime.now(timezone.utc),
    )
    assert client.get("/api/cron/balance-reminder", headers=cron_secret).json()["sent"] == 0
    assert sent_emails == []


def test_rows_without_token_are_skipped(client, dj, make_booking, cron_secret, sent_emails):
    make_booking(dj, deposit_paid=True, event_date=_due_date(), public_token=None)
    assert client.get("/api/cron/balance-reminder", headers=cron_secret).json()["skipped"] == 1


def test_failed_send_leaves_row_for_next_run(
    client, db, dj, make_booking, cron_secret, failing_emails
):
    booking = make_booking(dj, deposit_paid=True, event_date=_due_date())
    assert client.get("/api/cron/balance-reminder", headers=cron_secret).json()["failed"] == 1
    db.refresh(booking)
    assert booking.balance_reminder_sent_at is None


def test_target_date_is_seven_days_out():
    assert reminder_target_date(date(2030, 2, 25)) == date(2030, 3, 4)
