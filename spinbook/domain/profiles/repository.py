"""Profile repository - Database operations for DJ profiles"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import DjProfile


class ProfileRepository:
    """Repository for DJ profile database operations"""

    @staticmethod
    def get_by_user_id(db: Session, user_id: int) -> Optional[DjProfile]:
        return db.query(DjProfile).filter(DjProfile.user_id == user_id).first()

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Optional[DjProfile]:
        return db.query(DjProfile).filter(DjProfile.slug == slug).first()

    @staticmethod
    def get_published_by_slug(db: Session, slug: str) -> Optional[DjProfile]:
        return (
            db.query(DjProfile)
            .filter(DjProfile.slug == slug, DjProfile.published.is_(True))
            .first()
        )

    @staticmethod
    def get_by_id(db: Session, profile_id: str) -> Optional[DjProfile]:
        return db.query(DjProfile).filter(DjProfile.id == profile_id).first()

    @staticmethod
    def upsert(db: Session, user_id: int, **fields) -> DjProfile:
        """Create or update the profile owned by user_id"""
        profile = db.query(DjProfile).filter(DjProfile.user_id == user_id).first()
        if profile is None:
            profile = DjProfile(user_id=user_id, **fields)
            db.add(profile)
        else:
            for key, value in fields.items():
                setattr(profile, key, value)

        db.commit()
        db.refresh(profile)
        return profile
