from datetime import date
from unittest.mock import MagicMock

import pytest

from spinbook import email_service
from spinbook.constants import COMPANY_BCC, DEFAULT_FROM_ADDRESS
from spinbook.email_service import (
    EmailDeliveryError,
    build_public_request_url,
    get_sender_email,
    send_balance_reminder_email,
    send_email,
)
from spinbook.email_templates import (
    new_request_notification_template,
    request_received_template,
    waitlist_confirmation_template,
)


@pytest.fixture
def resend_send(monkeypatch):
    monkeypatch.setattr(email_service, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(email_service, "compile_mjml_to_html", lambda mjml: "<html>ok</html>")
    send = MagicMock(return_value={"id": "email_1"})
    monkeypatch.setattr(email_service.resend.Emails, "send", send)
    return send


class TestSenderAddress:
    def test_company_domain_candidate_is_kept(self):
        assert get_sender_email("Bookings <bookings@spinbookhq.com>") == (
            "Bookings <bookings@spinbookhq.com>"
        )

    def test_foreign_domain_falls_back(self, monkeypatch):
        monkeypatch.setattr(email_service, "EMAIL_FROM_ADDRESS", "someone@gmail.com")
        assert get_sender_email("me@gmail.com") == DEFAULT_FROM_ADDRESS


class TestSendEmail:
    async def test_every_email_is_blind_copied(self, resend_send):
        await send_email("ada@example.com", "Hello", "<mjml></mjml>")

        payload = resend_send.call_args.args[0]
        assert payload["to"] == ["ada@example.com"]
        assert payload["bcc"] == [COMPANY_BCC]
        assert payload["html"] == "<html>ok</html>"
        assert payload["from"].endswith("@spinbookhq.com>")

    async def test_not_configured(self, monkeypatch):
        monkeypatch.setattr(email_service, "RESEND_API_KEY", None)
        with pytest.raises(EmailDeliveryError):
            await send_email("ada@example.com", "Hello", "<mjml></mjml>")

    async def test_provider_error_is_wrapped(self, resend_send):
        resend_send.side_effect = RuntimeError("422 invalid to")
        with pytest.raises(EmailDeliveryError, match="422 invalid to"):
            await send_email("ada@example.com", "Hello", "<mjml></mjml>")


async def test_balance_reminder_subject_depends_on_recipient(resend_send):
    common = dict(
        requester_name="Ada",
        dj_name="DJ Nova",
        event_date=date(2030, 6, 14),
        event_location="DC",
        quoted_total=1000,
        booking_id="req-1",
        public_token="t" * 64,
    )
    await send_balance_reminder_email(to="ada@example.com", recipient_type="client", **common)
    await send_balance_reminder_email(to="nova@example.com", recipient_type="dj", **common)

    subjects = [c.args[0]["subject"] for c in resend_send.call_args_list]
    assert subjects == [
        "Reminder: balance due in 7 days for your DJ booking",
        "Reminder: balance due in 7 days (booking)",
    ]


def test_public_request_url():
    assert build_public_request_url("abc").endswith("/r/abc")


class TestTemplates:
    def test_user_input_is_escaped(self):
        mjml = request_received_template(
            requester_name="<script>alert(1)</script>",
            dj_name="DJ Nova",
            booking_id="req-1",
            event_date=date(2030, 6, 14),
            event_location="DC",
            status_url="https://spinbookhq.com/r/abc",
        )
        assert "<script>" not in mjml
        assert "&lt;script&gt;" in mjml
        assert "2030-06-14" in mjml

    def test_new_request_notification_mentions_deposit_rules(self):
        mjml = new_request_notification_template(
            dj_name="DJ Nova",
            requester_name="Ada",
            requester_email="ada@example.com",
            event_date="2030-06-14",
            event_location="DC",
            message=None,
            dashboard_url="https://spinbookhq.com/dashboard/requests/req-1",
        )
        assert "$450" in mjml
        assert "$200" in mjml
        assert "https://spinbookhq.com/dashboard/requests/req-1" in mjml

    def test_waitlist_confirmation_uses_band_label(self):
        mjml = waitlist_confirmation_template("DJ Nova", "Baltimore", "5+")
        assert "5+ years" in mjml
        assert "Baltimore" in mjml
