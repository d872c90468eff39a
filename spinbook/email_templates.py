"""
MJML Email Templates
Every transactional email SpinBook HQ sends. Interpolated values are escaped
here, so callers pass raw user input.
"""

from datetime import date
from typing import Optional, Union

from .constants import APP_NAME, DEPOSIT_AMOUNT_CENTS, EXPERIENCE_BANDS, MIN_QUOTED_TOTAL
from .utils.sanitization import format_usd, sanitize_attr, sanitize_string

THEME = {
    "primary": "#7c3aed",
    "accent": "#c026d3",
    "background": "#f5f5fa",
    "card_bg": "#fafafe",
    "text_primary": "#0b0b0f",
    "text_secondary": "#374151",
    "text_muted": "#6b7280",
    "border": "#e6e6ef",
}

FOOTER_TAGLINE = f"{APP_NAME} • Secure bookings for premium DJs"


def _link(url: str) -> str:
    return f'<a href="{sanitize_attr(url)}" style="color: {THEME["primary"]};">{sanitize_string(url)}</a>'


def _detail_rows(rows: list[tuple[str, Union[str, date, None]]]) -> str:
    """Render label/value pairs for the summary box, skipping empty values"""
    lines = [
        f"<strong>{sanitize_string(label)}:</strong> {sanitize_string(str(value))}"
        for label, value in rows
        if value not in (None, "")
    ]
    return "<br/>".join(lines)


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section background-color="#ffffff" padding="0 40px 32px 40px">
          <mj-column>
            <mj-button
              href="{sanitize_attr(cta_url)}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="700"
              border-radius="12px"
              padding="8px 0"
              font-size="16px">
              {sanitize_string(cta_label)}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{sanitize_string(title)}</mj-title>
        <mj-preview>{sanitize_string(preview_text)}</mj-preview>
        <mj-attributes>
          <mj-all font-family="ui-sans-serif, system-ui, -apple-system, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif" />
          <mj-text font-size="15px" line-height="1.5" color="{THEME['text_primary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 8px 40px">
          <mj-column>
            <mj-text font-size="22px" font-weight="700" padding="0 0 12px 0">
              {sanitize_string(title)}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="16px 20px">
          <mj-column>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="0 0 12px 0" />
            <mj-text align="center" font-size="12px" color="{THEME['text_muted']}" padding="0">
              {sanitize_string(FOOTER_TAGLINE)}
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _summary_box(inner_html: str) -> str:
    return f"""
    <mj-text background-color="{THEME['card_bg']}" border="1px solid {THEME['border']}" padding="14px 16px" container-background-color="{THEME['card_bg']}">
      {inner_html}
    </mj-text>
    """


def request_received_template(
    requester_name: str,
    dj_name: str,
    booking_id: str,
    event_date: Union[str, date],
    event_location: str,
    status_url: str,
) -> str:
    """Client: booking request received"""
    content = f"""
    <mj-text>
      Hi {sanitize_string(requester_name or "there")},<br/>
      We’ve received your booking request for <strong>{sanitize_string(dj_name)}</strong>.
      The DJ will review your details and respond soon.
    </mj-text>
    {_summary_box(
        _detail_rows([
            ("Booking reference", booking_id),
            ("Event date", event_date),
            ("Location", event_location),
        ])
        + f"<br/><br/><strong>Track your request:</strong><br/>{_link(status_url)}"
    )}
    """
    return get_base_template(
        title="Request received ✅",
        preview_text=f"{dj_name} will respond soon",
        content_sections=content,
    )


def new_request_notification_template(
    dj_name: str,
    requester_name: str,
    requester_email: Optional[str],
    event_date: Union[str, date, None],
    event_location: Optional[str],
    message: Optional[str],
    dashboard_url: str,
) -> str:
    """DJ: a new booking request arrived"""
    requester = sanitize_string(requester_name)
    if requester_email:
        requester += f" ({sanitize_string(requester_email)})"

    details = f"<strong>Requester:</strong> {requester}"
    extra = _detail_rows([("Event date", event_date), ("Location", event_location)])
    if extra:
        details += f"<br/>{extra}"
    if message:
        details += f"<br/><br/><strong>Message:</strong><br/>{sanitize_string(message)}"

    content = f"""
    <mj-text>
      Hi {sanitize_string(dj_name)},<br/>
      You’ve received a new booking request.
    </mj-text>
    {_summary_box(details)}
    <mj-text>
      Open this request in your dashboard:<br/>
      {_link(dashboard_url)}
    </mj-text>
    <mj-text font-size="12px" color="{THEME['text_secondary']}">
      Tip: Accept quickly and declare a final price (min {format_usd(MIN_QUOTED_TOTAL)}) to generate the
      {format_usd(DEPOSIT_AMOUNT_CENTS / 100)} deposit link.
    </mj-text>
    """
    return get_base_template(
        title="New booking request ✅",
        preview_text=f"{requester_name} wants to book you",
        content_sections=content,
        cta_url=dashboard_url,
        cta_label="Review request",
    )


def booking_declined_template(
    requester_name: str,
    dj_name: str,
    booking_id: str,
    status_url: str,
    browse_url: str,
) -> str:
    """Client: the DJ declined the request"""
    content = f"""
    <mj-text>
      Hi {sanitize_string(requester_name or "there")},<br/>
      Unfortunately, <strong>{sanitize_string(dj_name)}</strong> declined your booking request.
    </mj-text>
    {_summary_box(
        _detail_rows([("Booking reference", booking_id)])
        + f"<br/><br/>Track your request status (no account required):<br/>{_link(status_url)}"
    )}
    <mj-text>
      Want a replacement fast? Browse premium DJs here:<br/>
      {_link(browse_url)}
    </mj-text>
    """
    return get_base_template(
        title="Update on your DJ request",
        preview_text=f"{dj_name} declined your booking request",
        content_sections=content,
    )


def deposit_required_template(
    requester_name: str,
    dj_name: str,
    quoted_total: int,
    event_date: Union[str, date],
    event_location: str,
    booking_id: str,
    status_url: str,
    checkout_url: str,
) -> str:
    """Client: request accepted, deposit link enclosed"""
    deposit = format_usd(DEPOSIT_AMOUNT_CENTS / 100)
    content = f"""
    <mj-text>
      Hi {sanitize_string(requester_name or "there")},<br/>
      <strong>{sanitize_string(dj_name)}</strong> accepted your booking request.
      To lock in your date, please pay the required <strong>{deposit}</strong> deposit.
    </mj-text>
    {_summary_box(
        _detail_rows([
            ("Booking reference", booking_id),
            ("Agreed total price", format_usd(quoted_total)),
            ("Event date", event_date),
            ("Location", event_location),
        ])
        + f"<br/><br/><strong>Deposit:</strong> {deposit} (non-refundable)<br/>"
        + f'<span style="font-size:12px;color:{THEME["text_secondary"]};">'
        + "Policy: If you do <strong>NOT</strong> pay the remaining balance to the DJ "
        + "<strong>7 days before the event</strong>, the deposit is forfeited and the DJ may cancel."
        + "</span>"
    )}
    <mj-text>
      <strong>Pay deposit now:</strong><br/>
      {_link(checkout_url)}
    </mj-text>
    <mj-text>
      Track your booking status (no account required):<br/>
      {_link(status_url)}
    </mj-text>
    """
    return get_base_template(
        title="Your request was accepted ✅",
        preview_text=f"Pay the {deposit} deposit to confirm {dj_name}",
        content_sections=content,
        cta_url=checkout_url,
        cta_label="Pay deposit",
    )


def balance_reminder_template(
    recipient_type: str,
    requester_name: str,
    dj_name: str,
    event_date: Union[str, date],
    event_location: str,
    quoted_total: Optional[int],
    booking_id: str,
    status_url: str,
) -> str:
    """Client or DJ: remaining balance is due in 7 days"""
    if recipient_type == "dj":
        intro = (
            "Hello,<br/>This is your 7-day reminder: the client must pay the "
            "<strong>remaining balance</strong> before the deadline."
        )
    else:
        intro = (
            f"Hi {sanitize_string(requester_name or 'there')},<br/>"
            f"Your event with <strong>{sanitize_string(dj_name)}</strong> is in <strong>7 days</strong>. "
            "Please pay the <strong>remaining balance</strong> directly to the DJ before the deadline."
        )

    content = f"""
    <mj-text>{intro}</mj-text>
    {_summary_box(
        _detail_rows([
            ("Booking reference", booking_id),
            ("Agreed total price", format_usd(quoted_total) if quoted_total is not None else None),
            ("Event date", event_date),
            ("Location", event_location),
        ])
    )}
    <mj-text>
      Track this booking anytime:<br/>
      {_link(status_url)}
    </mj-text>
    <mj-text font-size="12px" color="{THEME['text_secondary']}">
      Policy: If the client does <strong>NOT</strong> pay the full balance to the DJ
      <strong>7 days before the event</strong>, the deposit is forfeited and the DJ may cancel.
    </mj-text>
    """
    return get_base_template(
        title="Balance reminder ⏳",
        preview_text="Remaining balance is due in 7 days",
        content_sections=content,
    )


def waitlist_confirmation_template(stage_name: str, city: str, experience_band: str) -> str:
    """DJ applicant: waitlist application received"""
    experience = EXPERIENCE_BANDS.get(experience_band, experience_band)
    content = f"""
    <mj-text>
      Hey {sanitize_string(stage_name or "DJ")},<br/>
      We’ve received your application for the <strong>{sanitize_string(APP_NAME)} Founding DJ Waitlist</strong>.
    </mj-text>
    {_summary_box(
        "<strong>Your application summary</strong><br/>"
        + _detail_rows([("City", city or "—"), ("Experience", experience)])
    )}
    <mj-text>
      If approved, you’ll receive a private invite to complete your DJ profile.
    </mj-text>
    """
    return get_base_template(
        title="Application received ✅",
        preview_text=f"You’re on the {APP_NAME} Founding DJ Waitlist",
        content_sections=content,
    )


__all__ = [
    "THEME",
    "get_base_template",
    "request_received_template",
    "new_request_notification_template",
    "booking_declined_template",
    "deposit_required_template",
    "balance_reminder_template",
    "waitlist_confirmation_template",
]
