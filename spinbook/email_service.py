"""
Email Service using Resend
Compiles MJML templates to HTML and sends every transactional email of the
marketplace. Each send is blind-copied to the company inbox.
"""

import logging
from datetime import date
from io import StringIO
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY, SITE_URL
from .constants import APP_NAME, COMPANY_BCC, DEFAULT_FROM_ADDRESS, SENDER_DOMAIN
from .email_templates import (
    balance_reminder_template,
    booking_declined_template,
    deposit_required_template,
    new_request_notification_template,
    request_received_template,
    waitlist_confirmation_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailDeliveryError(Exception):
    """Raised when an email could not be compiled or handed to Resend"""


def get_sender_email(candidate: Optional[str] = None) -> str:
    """
    Pick the From address.
    Only addresses on the company domain are allowed; anything else falls back
    to the default no-reply sender.
    """
    for address in (candidate, EMAIL_FROM_ADDRESS):
        if address and SENDER_DOMAIN in address.lower():
            return address
    return DEFAULT_FROM_ADDRESS


def build_public_request_url(public_token: str) -> str:
    return f"{SITE_URL}/r/{public_token}"


def build_dashboard_request_url(request_id: str) -> str:
    return f"{SITE_URL}/dashboard/requests/{request_id}"


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(StringIO(mjml_content))
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailDeliveryError(f"Failed to compile MJML template: {e}") from e

    errors = getattr(result, "errors", None)
    if errors:
        logger.warning(f"MJML compilation warnings: {errors}")
    return result.html


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend.

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (compiled to HTML here)
        from_address: Optional sender; must be on the company domain

    Returns:
        Resend response dict

    Raises:
        EmailDeliveryError: when Resend is not configured or rejects the message
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailDeliveryError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    email_data = {
        "from": get_sender_email(from_address),
        "to": recipients,
        "bcc": [COMPANY_BCC],
        "subject": subject,
        "html": html_content,
    }

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailDeliveryError(f"Failed to send email: {e}") from e


# ============================================
# Marketplace emails
# ============================================


async def send_request_received_email(
    to: str,
    requester_name: str,
    dj_name: str,
    booking_id: str,
    event_date: Union[str, date],
    event_location: str,
    public_token: str,
) -> dict:
    """Confirm to the client that their booking request was received"""
    mjml_content = request_received_template(
        requester_name=requester_name,
        dj_name=dj_name,
        booking_id=booking_id,
        event_date=event_date,
        event_location=event_location,
        status_url=build_public_request_url(public_token),
    )
    return await send_email(
        to=to,
        subject=f"Request received — {dj_name} will respond soon",
        mjml_content=mjml_content,
    )


async def send_new_request_notification(
    to: str,
    dj_name: str,
    request_id: str,
    requester_name: str,
    requester_email: Optional[str] = None,
    event_date: Union[str, date, None] = None,
    event_location: Optional[str] = None,
    message: Optional[str] = None,
) -> dict:
    """Tell a DJ that a new booking request arrived"""
    mjml_content = new_request_notification_template(
        dj_name=dj_name,
        requester_name=requester_name,
        requester_email=requester_email,
        event_date=event_date,
        event_location=event_location,
        message=message,
        dashboard_url=build_dashboard_request_url(request_id),
    )
    return await send_email(
        to=to,
        subject="New booking request received ✅",
        mjml_content=mjml_content,
    )


async def send_booking_declined_email(
    to: str,
    requester_name: str,
    dj_name: str,
    booking_id: str,
    public_token: str,
) -> dict:
    mjml_content = booking_declined_template(
        requester_name=requester_name,
        dj_name=dj_name,
        booking_id=booking_id,
        status_url=build_public_request_url(public_token),
        browse_url=f"{SITE_URL}/djs",
    )
    return await send_email(
        to=to,
        subject="Booking request declined",
        mjml_content=mjml_content,
    )


async def send_deposit_required_email(
    to: str,
    requester_name: str,
    dj_name: str,
    quoted_total: int,
    event_date: Union[str, date],
    event_location: str,
    booking_id: str,
    public_token: str,
    checkout_url: str,
) -> dict:
    """Send the accepted-request email carrying the deposit checkout link"""
    mjml_content = deposit_required_template(
        requester_name=requester_name,
        dj_name=dj_name,
        quoted_total=quoted_total,
        event_date=event_date,
        event_location=event_location,
        booking_id=booking_id,
        status_url=build_public_request_url(public_token),
        checkout_url=checkout_url,
    )
    return await send_email(
        to=to,
        subject="DJ accepted — deposit required to confirm your booking",
        mjml_content=mjml_content,
    )


async def send_balance_reminder_email(
    to: str,
    recipient_type: str,
    requester_name: str,
    dj_name: str,
    event_date: Union[str, date],
    event_location: str,
    quoted_total: Optional[int],
    booking_id: str,
    public_token: str,
) -> dict:
    """
    7-day balance reminder. recipient_type is "client" or "dj"; the two
    variants differ in greeting and subject.
    """
    mjml_content = balance_reminder_template(
        recipient_type=recipient_type,
        requester_name=requester_name,
        dj_name=dj_name,
        event_date=event_date,
        event_location=event_location,
        quoted_total=quoted_total,
        booking_id=booking_id,
        status_url=build_public_request_url(public_token),
    )
    if recipient_type == "dj":
        subject = "Reminder: balance due in 7 days (booking)"
    else:
        subject = "Reminder: balance due in 7 days for your DJ booking"
    return await send_email(to=to, subject=subject, mjml_content=mjml_content)


async def send_waitlist_confirmation_email(
    to: str, stage_name: str, city: str, experience_band: str
) -> dict:
    mjml_content = waitlist_confirmation_template(stage_name, city, experience_band)
    return await send_email(
        to=to,
        subject=f"✅ You're in — {APP_NAME} Founding DJ Waitlist",
        mjml_content=mjml_content,
    )
