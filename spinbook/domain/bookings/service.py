"""Booking service - Booking request lifecycle and deposit checkout links"""

import logging
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import SITE_URL
from ...constants import (
    BOOKING_STATUSES,
    DEPOSIT_AMOUNT_CENTS,
    DEPOSIT_POLICY,
    DEPOSIT_SPLIT_DJ_CENTS,
    DEPOSIT_SPLIT_PLATFORM_CENTS,
    DJ_SETTABLE_STATUSES,
    MIN_QUOTED_TOTAL,
    PLATFORM_FEE_PAID_FROM_DEPOSIT,
    PUBLIC_TOKEN_MIN_LENGTH,
    STATUS_ACCEPTED,
    STATUS_DECLINED,
    STATUS_NEW,
)
from ...email_service import (
    EmailDeliveryError,
    send_booking_declined_email,
    send_deposit_required_email,
    send_new_request_notification,
    send_request_received_email,
)
from ...models import BookingRequest, User
from ...security_middleware import use_service_role
from ...shared.validators import (
    calc_fee_due,
    calc_fee_status,
    calc_platform_fee_total,
    generate_public_token,
    is_valid_email,
    parse_event_date,
    parse_positive_int,
)
from ..payments.dodo_service import DodoPaymentsService, PaymentProviderError, dodo_service
from ..profiles.repository import ProfileRepository
from .repository import BookingRepository
from .schemas import BookingForm, FeeSummary, HookPayload, TrackerView

logger = logging.getLogger(__name__)


class BookingFormError(ValueError):
    """Public booking form rejected; str(e) is the reason code for the banner"""


class DepositLinkError(Exception):
    """Deposit link could not be produced"""

    def __init__(self, message: str, status_code: int = 409):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _now() -> datetime:
    return datetime.now(timezone.utc)


def has_usable_token(booking: BookingRequest) -> bool:
    return len((booking.public_token or "").strip()) >= PUBLIC_TOKEN_MIN_LENGTH


class BookingService:
    """Service layer for booking request business logic"""

    def __init__(self, db: Session, payments: Optional[DodoPaymentsService] = None):
        self.db = db
        self.repo = BookingRepository()
        self.payments = payments or dodo_service

    # ============================================
    # Public intake
    # ============================================

    def get_bookable_profile(self, slug: str):
        """Published profile that can take requests, or None"""
        return ProfileRepository.get_published_by_slug(self.db, slug)

    async def submit_request(self, slug: str, form: BookingForm) -> BookingRequest:
        """
        Create a booking request for a published DJ and confirm it to the client.
        Raises BookingFormError with a reason code on rejection.
        """
        if not form.name or not form.email or not form.event_date or not form.location:
            raise BookingFormError("missing_fields")
        if not is_valid_email(form.email):
            raise BookingFormError("bad_email")

        event_date = parse_event_date(form.event_date)
        if event_date is None:
            raise BookingFormError("bad_date")

        use_service_role(self.db)
        profile = self.get_bookable_profile(slug)
        if not profile:
            logger.warning(f"⚠️ Booking submitted for unknown or unpublished DJ '{slug}'")
            raise BookingFormError("dj_not_found")

        try:
            booking = self.repo.create_request(
                self.db,
                dj_user_id=profile.user_id,
                requester_name=form.name,
                requester_email=form.email,
                event_date=event_date,
                event_location=form.location,
                message=form.message,
                status=STATUS_NEW,
                public_token=generate_public_token(),
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ booking_requests insert failed for DJ '{slug}': {e}")
            raise BookingFormError("insert_failed") from e

        logger.info(f"✅ Booking request {booking.id} created for DJ '{slug}'")

        try:
            await send_request_received_email(
                to=booking.requester_email,
                requester_name=booking.requester_name,
                dj_name=profile.stage_name or "DJ",
                booking_id=booking.id,
                event_date=booking.event_date,
                event_location=booking.event_location,
                public_token=booking.public_token,
            )
        except EmailDeliveryError as e:
            logger.warning(f"⚠️ Request-received email failed for {booking.id}: {e}")
        else:
            self.repo.update(self.db, booking, request_email_sent_at=_now())

        return booking

    # ============================================
    # DJ dashboard
    # ============================================

    @staticmethod
    def normalize_filter(status: Optional[str]) -> str:
        value = (status or "").strip().lower()
        return value if value in BOOKING_STATUSES else "all"

    def list_requests(self, user: User, status: Optional[str]) -> tuple[list[BookingRequest], str]:
        status_filter = self.normalize_filter(status)
        requests = self.repo.list_for_dj(
            self.db, user.id, None if status_filter == "all" else status_filter
        )
        return requests, status_filter

    def count_new(self, user: User) -> int:
        return self.repo.count_new(self.db, user.id)

    def get_request(self, user: User, request_id: str) -> BookingRequest:
        booking = self.repo.get_for_dj(self.db, request_id, user.id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking request not found")
        return booking

    @staticmethod
    def fee_summary(booking: BookingRequest) -> FeeSummary:
        return FeeSummary(
            quoted_total=booking.quoted_total,
            platform_fee_total=booking.platform_fee_total,
            platform_fee_paid=booking.platform_fee_paid,
            fee_due=calc_fee_due(booking.platform_fee_total, booking.platform_fee_paid),
            fee_status=booking.fee_status,
        )

    def accept_and_quote(self, user: User, request_id: str, quoted_raw: Optional[str]) -> str:
        """Accept a new request with a declared final price; returns the page message"""
        quoted_total = parse_positive_int(quoted_raw)
        if quoted_total is None or quoted_total < MIN_QUOTED_TOTAL:
            return f"Final price must be at least ${MIN_QUOTED_TOTAL}."

        platform_fee_total = calc_platform_fee_total(quoted_total)
        updated = self.repo.accept_if_new(
            self.db,
            request_id,
            user.id,
            status=STATUS_ACCEPTED,
            quoted_total=quoted_total,
            quoted_at=_now(),
            platform_fee_total=platform_fee_total,
            platform_fee_paid=PLATFORM_FEE_PAID_FROM_DEPOSIT,
            fee_status=calc_fee_status(platform_fee_total, PLATFORM_FEE_PAID_FROM_DEPOSIT),
        )
        if not updated:
            logger.info(f"🔄 Accept ignored for {request_id}: not new or not owned by {user.id}")
            return "Only new requests can be accepted."

        logger.info(f"✅ Request {request_id} accepted at ${quoted_total} by user {user.id}")
        return "Request accepted. Create the deposit link to send it to the client."

    async def set_status(self, user: User, request_id: str, status: str) -> str:
        """Decline or close a request; declining emails the client once"""
        status = (status or "").strip().lower()
        if status not in DJ_SETTABLE_STATUSES:
            return "Invalid status."

        booking = self.get_request(user, request_id)
        updates = {"status": status}
        if status == STATUS_DECLINED and not has_usable_token(booking):
            updates["public_token"] = generate_public_token()
        booking = self.repo.update(self.db, booking, **updates)
        logger.info(f"✅ Request {request_id} set to {status} by user {user.id}")

        if status != STATUS_DECLINED:
            return "Request closed."

        if booking.decline_email_sent_at:
            return "Request declined."

        profile = self.repo.get_dj_profile(self.db, user.id)
        try:
            await send_booking_declined_email(
                to=booking.requester_email,
                requester_name=booking.requester_name,
                dj_name=(profile.stage_name if profile else None) or "DJ",
                booking_id=booking.id,
                public_token=booking.public_token,
            )
        except EmailDeliveryError as e:
            logger.warning(f"⚠️ Decline email failed for {booking.id}: {e}")
            return "Request declined. The email to the client could not be sent."

        self.repo.update(self.db, booking, decline_email_sent_at=_now())
        return "Request declined. The client has been notified."

    # ============================================
    # Deposit checkout
    # ============================================

    async def _send_accept_email(self, booking: BookingRequest, dj_name: str) -> bool:
        """Send the deposit-required email and mark it; False when delivery failed"""
        try:
            await send_deposit_required_email(
                to=booking.requester_email,
                requester_name=booking.requester_name,
                dj_name=dj_name,
                quoted_total=booking.quoted_total,
                event_date=booking.event_date,
                event_location=booking.event_location,
                booking_id=booking.id,
                public_token=booking.public_token,
                checkout_url=booking.checkout_url,
            )
        except EmailDeliveryError as e:
            logger.warning(f"⚠️ Deposit email failed for {booking.id}: {e}")
            return False

        self.repo.update(self.db, booking, accept_email_sent_at=_now())
        return True

    async def ensure_deposit_link(self, user: User, request_id: str) -> dict:
        """
        Return the deposit checkout link for an accepted request, creating it
        once. The client is emailed the link the first time it exists.

        Returns:
            {"url": str, "reused": bool, "email_sent": bool}

        Raises:
            DepositLinkError with a message and HTTP status for API callers
        """
        booking = self.repo.get_for_dj(self.db, request_id, user.id)
        if not booking:
            raise DepositLinkError("Booking request not found", 404)
        if booking.deposit_paid:
            raise DepositLinkError("Deposit already paid", 409)
        if booking.status != STATUS_ACCEPTED or (booking.quoted_total or 0) < MIN_QUOTED_TOTAL:
            raise DepositLinkError(
                f"Accept the request with a final price of at least ${MIN_QUOTED_TOTAL} first",
                409,
            )

        profile = self.repo.get_dj_profile(self.db, user.id)
        dj_slug = (profile.slug if profile else "") or ""
        dj_name = (profile.stage_name if profile else None) or "DJ"

        if not has_usable_token(booking):
            booking = self.repo.update(self.db, booking, public_token=generate_public_token())

        if booking.checkout_url:
            email_sent = bool(booking.accept_email_sent_at)
            if not email_sent:
                email_sent = await self._send_accept_email(booking, dj_name)
            logger.info(f"🔄 Reusing deposit link for {booking.id}")
            return {"url": booking.checkout_url, "reused": True, "email_sent": email_sent}

        if not dj_slug:
            raise DepositLinkError("Set your profile slug before creating a deposit link", 409)

        platform_fee_total = calc_platform_fee_total(booking.quoted_total)
        fee_fields = {
            "platform_fee_total": platform_fee_total,
            "platform_fee_paid": PLATFORM_FEE_PAID_FROM_DEPOSIT,
            "fee_status": calc_fee_status(platform_fee_total, PLATFORM_FEE_PAID_FROM_DEPOSIT),
        }
        return_url = f"{SITE_URL}/book/return?{urlencode({'rid': booking.id, 'dj': dj_slug})}"

        try:
            session = await self.payments.create_deposit_checkout(
                amount_cents=DEPOSIT_AMOUNT_CENTS,
                customer_email=booking.requester_email,
                customer_name=booking.requester_name,
                return_url=return_url,
                metadata={
                    "booking_request_id": booking.id,
                    "dj_user_id": booking.dj_user_id,
                    "dj_slug": dj_slug,
                    "deposit_amount_cents": DEPOSIT_AMOUNT_CENTS,
                    "deposit_split_platform_cents": DEPOSIT_SPLIT_PLATFORM_CENTS,
                    "deposit_split_dj_cents": DEPOSIT_SPLIT_DJ_CENTS,
                    "quoted_total": booking.quoted_total,
                    "platform_fee_total": platform_fee_total,
                    "platform_fee_paid": PLATFORM_FEE_PAID_FROM_DEPOSIT,
                    "policy": DEPOSIT_POLICY,
                },
            )
        except PaymentProviderError as e:
            logger.error(f"❌ Deposit checkout failed for {booking.id}: {e}")
            raise DepositLinkError("Could not create the deposit checkout. Try again.", 502) from e

        booking = self.repo.update(
            self.db,
            booking,
            checkout_url=session["checkout_url"],
            checkout_session_id=session.get("session_id"),
            **fee_fields,
        )
        logger.info(f"✅ Deposit link saved for {booking.id}")

        email_sent = await self._send_accept_email(booking, dj_name)
        return {"url": booking.checkout_url, "reused": False, "email_sent": email_sent}

    # ============================================
    # No-account tracker
    # ============================================

    def get_tracker(self, token: str) -> Optional[TrackerView]:
        token = (token or "").strip()
        if len(token) < PUBLIC_TOKEN_MIN_LENGTH:
            return None

        use_service_role(self.db)
        booking = self.repo.get_by_token(self.db, token)
        if not booking:
            return None

        profile = self.repo.get_dj_profile(self.db, booking.dj_user_id)
        return TrackerView(
            id=booking.id,
            dj_name=(profile.stage_name if profile else None) or "DJ",
            dj_slug=profile.slug if profile and profile.published else None,
            requester_name=booking.requester_name,
            event_date=booking.event_date,
            event_location=booking.event_location,
            status=booking.status,
            quoted_total=booking.quoted_total,
            deposit_paid=bool(booking.deposit_paid),
            deposit_paid_at=booking.deposit_paid_at,
            checkout_url=booking.checkout_url,
            created_at=booking.created_at,
        )

    # ============================================
    # Database insert hook
    # ============================================

    async def notify_new_request(self, payload: HookPayload) -> dict:
        """Email the DJ about a freshly inserted booking request"""
        if (payload.type or "").upper() != "INSERT" or payload.table != "booking_requests":
            return {"ok": True, "ignored": True}

        record = payload.record or {}
        request_id = str(record.get("id") or "").strip()
        dj_user_id = record.get("dj_user_id")
        if not request_id or dj_user_id in (None, ""):
            return {"ok": True, "ignored": True, "reason": "missing id/dj_user_id"}

        use_service_role(self.db)
        try:
            dj_user = self.repo.get_dj_user(self.db, int(dj_user_id))
        except (TypeError, ValueError):
            dj_user = None
        if not dj_user or not dj_user.email:
            logger.warning(f"⚠️ No DJ email for booking request {request_id}")
            return {"ok": True, "skipped": True, "reason": "dj email not found"}

        profile = self.repo.get_dj_profile(self.db, dj_user.id)
        try:
            await send_new_request_notification(
                to=dj_user.email,
                dj_name=(profile.stage_name if profile else None) or "there",
                request_id=request_id,
                requester_name=str(record.get("requester_name") or "A client"),
                requester_email=record.get("requester_email"),
                event_date=record.get("event_date"),
                event_location=record.get("event_location"),
                message=record.get("message"),
            )
        except EmailDeliveryError as e:
            logger.error(f"❌ New-request email to DJ failed for {request_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e)) from e

        logger.info(f"✅ DJ notified of booking request {request_id}")
        return {"ok": True, "sent": True, "to": dj_user.email}
