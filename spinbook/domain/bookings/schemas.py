"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...constants import STATUS_NEW


class BookingForm(BaseModel):
    """Public booking request form; fields are trimmed, never rejected here"""

    name: str = ""
    email: str = ""
    event_date: str = ""
    location: str = ""
    message: Optional[str] = None

    @field_validator("name", "email", "event_date", "location", mode="before")
    @classmethod
    def strip_text(cls, v):
        return str(v or "").strip()

    @field_validator("message", mode="before")
    @classmethod
    def optional_message(cls, v):
        value = str(v or "").strip()
        return value or None


class CheckoutRequest(BaseModel):
    rid: Optional[str] = None

    @field_validator("rid", mode="before")
    @classmethod
    def strip_rid(cls, v):
        return str(v or "").strip()


class CheckoutResponse(BaseModel):
    url: str
    reused: bool


class FeeSummary(BaseModel):
    quoted_total: Optional[int] = None
    platform_fee_total: Optional[int] = None
    platform_fee_paid: Optional[int] = None
    fee_due: Optional[int] = None
    fee_status: Optional[str] = None


class TrackerView(BaseModel):
    """What a client sees on /r/{token}"""

    id: str
    dj_name: str
    dj_slug: Optional[str] = None
    requester_name: str
    event_date: date
    event_location: str
    status: str
    quoted_total: Optional[int] = None
    deposit_paid: bool = False
    deposit_paid_at: Optional[datetime] = None
    checkout_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        value = str(v or "").strip().lower()
        return STATUS_NEW if value in ("", "pending") else value

    @property
    def can_pay_deposit(self) -> bool:
        return self.status == "accepted" and bool(self.checkout_url) and not self.deposit_paid


class HookPayload(BaseModel):
    """Database webhook body: {type, table, record}"""

    type: Optional[str] = None
    table: Optional[str] = None
    record: Optional[dict[str, Any]] = None
