import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a UUID string used as a non-sequential primary key"""
    return str(uuid.uuid4())


class User(Base):
    """Local mirror of a hosted-auth identity"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    auth_uid = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    is_dj = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    dj_profile = relationship(
        "DjProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    booking_requests = relationship(
        "BookingRequest", back_populates="dj", cascade="all, delete-orphan"
    )


class DjProfile(Base):
    __tablename__ = "dj_profiles"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    stage_name = Column(String(120), nullable=False)
    slug = Column(String(120), unique=True, index=True, nullable=False)
    city = Column(String(120), nullable=False)
    bio = Column(Text, nullable=True)  # trimmed to 600 chars on save
    genres = Column(JSON, nullable=True)  # list of DJ_GENRES values
    rate = Column(Integer, nullable=True)  # starting rate in whole dollars
    avatar_url = Column(String(1000), nullable=True)
    published = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="dj_profile")


class BookingRequest(Base):
    __tablename__ = "booking_requests"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    dj_user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    requester_name = Column(String(255), nullable=False)
    requester_email = Column(String(255), nullable=False)
    event_date = Column(Date, index=True, nullable=False)
    event_location = Column(String(500), nullable=False)
    message = Column(Text, nullable=True)
    status = Column(String(20), default="new", index=True, nullable=False)

    # Quote and platform fee bookkeeping (whole dollars)
    quoted_total = Column(Integer, nullable=True)
    quoted_at = Column(DateTime(timezone=True), nullable=True)
    platform_fee_total = Column(Integer, nullable=True)
    platform_fee_paid = Column(Integer, nullable=True)
    fee_status = Column(String(20), nullable=True)  # due, ok, unknown

    # Deposit checkout
    checkout_url = Column(String(1000), nullable=True)
    checkout_session_id = Column(String(255), nullable=True)
    deposit_paid = Column(Boolean, default=False, nullable=False)
    deposit_paid_at = Column(DateTime(timezone=True), nullable=True)
    deposit_payment_id = Column(String(255), nullable=True)

    # No-account tracker access (/r/{public_token})
    public_token = Column(String(128), unique=True, index=True, nullable=True)

    # Email send markers; only set after a successful send
    request_email_sent_at = Column(DateTime(timezone=True), nullable=True)
    accept_email_sent_at = Column(DateTime(timezone=True), nullable=True)
    decline_email_sent_at = Column(DateTime(timezone=True), nullable=True)
    balance_reminder_sent_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    dj = relationship("User", back_populates="booking_requests")


class WaitlistEntry(Base):
    __tablename__ = "dj_waitlist"

    id = Column(Integer, primary_key=True, index=True)
    stage_name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    city = Column(String(120), nullable=False)
    experience_band = Column(String(10), nullable=False)  # 1-3, 3-5, 5+
    status = Column(String(20), default="pending", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
