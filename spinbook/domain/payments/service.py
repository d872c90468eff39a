"""Payment service - Deposit webhook processing"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from ...constants import DEPOSIT_AMOUNT_CENTS, DEPOSIT_CURRENCY, PLATFORM_FEE_PAID_FROM_DEPOSIT
from ...security_middleware import use_service_role
from ...shared.validators import calc_fee_status, calc_platform_fee_total, parse_positive_int
from ..bookings.repository import BookingRepository

logger = logging.getLogger(__name__)

DEPOSIT_EVENTS = ("payment.succeeded", "checkout.session.completed")


def _amount_cents(data: dict) -> Optional[int]:
    """Amount in cents from a payment or checkout payload"""
    for field in ("total_amount", "amount", "amount_total"):
        value = data.get(field)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    return None


class PaymentService:
    """Service layer for deposit payment events"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    def handle_event(self, event: dict[str, Any]) -> dict:
        """
        Apply a verified Dodo Payments event.

        Only deposit events carrying a booking_request_id are acted on. Unexpected
        amounts or currencies are acknowledged but ignored so the provider stops
        retrying. Already-paid requests exit idempotently.
        """
        event_type = event.get("type")
        data = event.get("data") or {}

        if event_type not in DEPOSIT_EVENTS:
            logger.info(f"Event {event_type} received and ignored (no handler)")
            return {"received": True}

        metadata = data.get("metadata") or {}
        request_id = str(metadata.get("booking_request_id") or "").strip()
        if not request_id:
            logger.info(f"Event {event_type} has no booking_request_id; ignoring")
            return {"received": True}

        currency = str(data.get("currency") or "").lower()
        amount = _amount_cents(data)
        if currency != DEPOSIT_CURRENCY or amount != DEPOSIT_AMOUNT_CENTS:
            logger.warning(
                f"⚠️ Deposit for {request_id} has unexpected amount/currency: {amount} {currency}"
            )
            return {
                "received": True,
                "ignored": True,
                "reason": "Unexpected deposit amount or currency",
            }

        use_service_role(self.db)
        booking = self.repo.get_by_id(self.db, request_id)
        if not booking:
            logger.warning(f"⚠️ Deposit webhook for unknown request {request_id}")
            return {"received": True, "ignored": True, "reason": "Request not found"}

        if booking.deposit_paid:
            logger.info(f"🔄 Deposit for {request_id} already recorded (idempotent)")
            return {"received": True, "ok": True, "idempotent": True}

        # Stored quote wins; metadata only fills a missing one
        if booking.quoted_total and booking.quoted_total > 0:
            final_quoted = booking.quoted_total
        else:
            final_quoted = parse_positive_int(metadata.get("quoted_total"))

        updates: dict[str, Any] = {
            "deposit_paid": True,
            "deposit_paid_at": datetime.now(timezone.utc),
            "platform_fee_paid": PLATFORM_FEE_PAID_FROM_DEPOSIT,
        }
        platform_fee_total = booking.platform_fee_total
        if final_quoted is not None:
            platform_fee_total = calc_platform_fee_total(final_quoted)
            updates["quoted_total"] = final_quoted
            updates["platform_fee_total"] = platform_fee_total

        if platform_fee_total is None:
            updates["fee_status"] = booking.fee_status or "unknown"
        else:
            updates["fee_status"] = calc_fee_status(
                platform_fee_total, PLATFORM_FEE_PAID_FROM_DEPOSIT
            )

        payment_id = data.get("payment_id")
        if payment_id:
            updates["deposit_payment_id"] = str(payment_id)
        session_id = data.get("checkout_session_id") or data.get("session_id")
        if session_id:
            updates["checkout_session_id"] = str(session_id)

        self.repo.update(self.db, booking, **updates)
        logger.info(f"✅ Deposit recorded for booking request {request_id}")
        return {"received": True, "ok": True}
