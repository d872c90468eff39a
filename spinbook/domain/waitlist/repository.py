"""Waitlist repository - Database operations for waitlist applications"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import WaitlistEntry


class WaitlistRepository:
    """Repository for waitlist database operations"""

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[WaitlistEntry]:
        return db.query(WaitlistEntry).filter(WaitlistEntry.email == email).first()

    @staticmethod
    def create_entry(db: Session, **fields) -> WaitlistEntry:
        entry = WaitlistEntry(**fields)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
