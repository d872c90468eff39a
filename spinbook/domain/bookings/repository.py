"""Booking repository - Database operations for booking requests"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...constants import STATUS_NEW
from ...models import BookingRequest, DjProfile, User


class BookingRepository:
    """Repository for booking request database operations"""

    @staticmethod
    def create_request(db: Session, **fields) -> BookingRequest:
        booking = BookingRequest(**fields)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def get_by_id(db: Session, request_id: str) -> Optional[BookingRequest]:
        return db.query(BookingRequest).filter(BookingRequest.id == request_id).first()

    @staticmethod
    def get_for_dj(db: Session, request_id: str, dj_user_id: int) -> Optional[BookingRequest]:
        """Get a request only if it belongs to the DJ"""
        return (
            db.query(BookingRequest)
            .filter(BookingRequest.id == request_id, BookingRequest.dj_user_id == dj_user_id)
            .first()
        )

    @staticmethod
    def get_by_token(db: Session, public_token: str) -> Optional[BookingRequest]:
        return (
            db.query(BookingRequest).filter(BookingRequest.public_token == public_token).first()
        )

    @staticmethod
    def list_for_dj(
        db: Session, dj_user_id: int, status: Optional[str] = None
    ) -> list[BookingRequest]:
        """Requests for a DJ, newest first, optionally filtered by status"""
        query = db.query(BookingRequest).filter(BookingRequest.dj_user_id == dj_user_id)
        if status:
            query = query.filter(BookingRequest.status == status)
        return query.order_by(BookingRequest.created_at.desc()).all()

    @staticmethod
    def count_new(db: Session, dj_user_id: int) -> int:
        return (
            db.query(func.count(BookingRequest.id))
            .filter(BookingRequest.dj_user_id == dj_user_id, BookingRequest.status == STATUS_NEW)
            .scalar()
            or 0
        )

    @staticmethod
    def accept_if_new(db: Session, request_id: str, dj_user_id: int, **fields) -> int:
        """
        Conditional update guarded by status == 'new'.
        Returns the number of rows changed (0 when already handled).
        """
        updated = (
            db.query(BookingRequest)
            .filter(
                BookingRequest.id == request_id,
                BookingRequest.dj_user_id == dj_user_id,
                BookingRequest.status == STATUS_NEW,
            )
            .update(fields, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def update(db: Session, booking: BookingRequest, **fields) -> BookingRequest:
        for key, value in fields.items():
            setattr(booking, key, value)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def get_dj_profile(db: Session, dj_user_id: int) -> Optional[DjProfile]:
        return db.query(DjProfile).filter(DjProfile.user_id == dj_user_id).first()

    @staticmethod
    def get_dj_user(db: Session, dj_user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == dj_user_id).first()
