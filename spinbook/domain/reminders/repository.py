"""Reminder repository - Queries for the balance reminder job"""

from datetime import date

from sqlalchemy.orm import Session

from ...models import BookingRequest


class ReminderRepository:
    """Repository for reminder database operations"""

    @staticmethod
    def due_for_balance_reminder(db: Session, event_date: date) -> list[BookingRequest]:
        """Paid deposits for events on event_date that have not been reminded yet"""
        return (
            db.query(BookingRequest)
            .filter(
                BookingRequest.deposit_paid.is_(True),
                BookingRequest.event_date == event_date,
                BookingRequest.balance_reminder_sent_at.is_(None),
            )
            .order_by(BookingRequest.created_at)
            .all()
        )
