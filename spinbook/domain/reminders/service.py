"""Reminder service - 7-day balance reminders for paid bookings"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ...constants import BALANCE_DUE_DAYS_BEFORE_EVENT
from ...email_service import EmailDeliveryError, send_balance_reminder_email
from ...models import BookingRequest
from ...security_middleware import use_service_role
from ..bookings.repository import BookingRepository
from .repository import ReminderRepository

logger = logging.getLogger(__name__)


def reminder_target_date(today: Optional[date] = None) -> date:
    """Event date whose balance falls due today (UTC)"""
    today = today or datetime.now(timezone.utc).date()
    return today + timedelta(days=BALANCE_DUE_DAYS_BEFORE_EVENT)


class BalanceReminderService:
    """Sends one balance reminder per paid booking, to the client and the DJ"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReminderRepository()
        self.bookings = BookingRepository()

    async def _send(self, booking: BookingRequest, to: str, recipient_type: str, dj_name: str) -> bool:
        try:
            await send_balance_reminder_email(
                to=to,
                recipient_type=recipient_type,
                requester_name=booking.requester_name,
                dj_name=dj_name,
                event_date=booking.event_date,
                event_location=booking.event_location,
                quoted_total=booking.quoted_total,
                booking_id=booking.id,
                public_token=booking.public_token,
            )
        except EmailDeliveryError as e:
            logger.warning(f"⚠️ Balance reminder to {recipient_type} failed for {booking.id}: {e}")
            return False
        return True

    async def run(self, today: Optional[date] = None) -> dict:
        """
        Remind every paid booking whose event is 7 days out.

        A booking is marked reminded only when the client email went out and
        the DJ email either went out or could not be attempted (no DJ email).
        """
        target = reminder_target_date(today)
        use_service_role(self.db)
        rows = self.repo.due_for_balance_reminder(self.db, target)
        logger.info(f"📥 Balance reminders: {len(rows)} booking(s) with event on {target}")

        sent = skipped = failed = 0
        for booking in rows:
            requester_to = (booking.requester_email or "").strip()
            public_token = (booking.public_token or "").strip()
            if not requester_to or not public_token:
                skipped += 1
                continue

            profile = self.bookings.get_dj_profile(self.db, booking.dj_user_id)
            dj_name = (profile.stage_name if profile else None) or "DJ"
            dj_user = self.bookings.get_dj_user(self.db, booking.dj_user_id)
            dj_to = (dj_user.email if dj_user else "") or ""

            requester_ok = await self._send(booking, requester_to, "client", dj_name)
            dj_ok = await self._send(booking, dj_to, "dj", dj_name) if dj_to else None

            if requester_ok and dj_ok is not False:
                self.bookings.update(
                    self.db, booking, balance_reminder_sent_at=datetime.now(timezone.utc)
                )
                sent += 1
            else:
                failed += 1

        logger.info(f"✅ Balance reminders done: sent={sent} skipped={skipped} failed={failed}")
        return {
            "ok": True,
            "target": target.isoformat(),
            "sent": sent,
            "skipped": skipped,
            "failed": failed,
        }
