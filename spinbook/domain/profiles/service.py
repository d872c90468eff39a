"""Profile service - Business logic for DJ profiles"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ...models import DjProfile, User
from ...shared.validators import normalize_slug, parse_genres
from ...utils.avatar_storage import AvatarUploadError, upload_avatar
from .repository import ProfileRepository
from .schemas import ChecklistItem, ProfileForm, PublicProfile

logger = logging.getLogger(__name__)

MSG_PHOTO_REQUIRED = "Profile photo is required. Please upload a clear headshot before continuing."
MSG_REQUIRED_FIELDS = "Stage name, slug, and city are required."
MSG_SLUG_INVALID = "Slug is invalid. Use letters, numbers, and hyphens."
MSG_SLUG_TAKEN = "That slug is already taken. Try another."
MSG_SAVED_PUBLISHED = "Profile saved and published."
MSG_SAVED_DRAFT = "Profile saved. Turn on Publish when you’re ready."


class ProfileValidationError(ValueError):
    """Profile form rejected; the message is shown on the editor page"""


class ProfileService:
    """Service layer for DJ profile business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProfileRepository()

    def get_profile(self, user: User) -> Optional[DjProfile]:
        return self.repo.get_by_user_id(self.db, user.id)

    async def save_profile(
        self,
        user: User,
        form: ProfileForm,
        avatar_content: Optional[bytes] = None,
        avatar_content_type: Optional[str] = None,
    ) -> str:
        """
        Validate and upsert the DJ's profile, uploading a new avatar when given.

        Returns the confirmation message for the editor page.
        Raises ProfileValidationError with a user-facing message otherwise.
        """
        current = self.repo.get_by_user_id(self.db, user.id)
        existing_avatar = (current.avatar_url or "").strip() if current else ""
        has_new_avatar = bool(avatar_content)

        if not existing_avatar and not has_new_avatar:
            raise ProfileValidationError(MSG_PHOTO_REQUIRED)

        if not form.stage_name or not form.slug or not form.city:
            raise ProfileValidationError(MSG_REQUIRED_FIELDS)

        slug = normalize_slug(form.slug)
        if not slug:
            raise ProfileValidationError(MSG_SLUG_INVALID)

        owner = self.repo.get_by_slug(self.db, slug)
        if owner and owner.user_id != user.id:
            logger.info(f"🚫 Slug '{slug}' already taken (user {user.id})")
            raise ProfileValidationError(MSG_SLUG_TAKEN)

        avatar_url = existing_avatar or None
        if has_new_avatar:
            try:
                avatar_url = await run_in_threadpool(
                    upload_avatar, user.id, avatar_content, avatar_content_type
                )
            except AvatarUploadError as e:
                raise ProfileValidationError(f"Photo upload failed: {e}") from e

        try:
            self.repo.upsert(
                self.db,
                user.id,
                stage_name=form.stage_name,
                slug=slug,
                city=form.city,
                bio=form.bio,
                genres=form.genres,
                rate=form.rate,
                published=form.published,
                avatar_url=avatar_url,
            )
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Slug '{slug}' taken during save for user {user.id}")
            raise ProfileValidationError(MSG_SLUG_TAKEN) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Profile save failed for user {user.id}: {e}")
            raise ProfileValidationError(f"Save failed: {e}") from e

        logger.info(f"✅ Profile saved for user {user.id} (slug={slug}, published={form.published})")
        return MSG_SAVED_PUBLISHED if form.published else MSG_SAVED_DRAFT

    def get_viewable_profile(
        self, slug: str, viewer: Optional[User]
    ) -> Optional[tuple[PublicProfile, bool]]:
        """
        Profile for /dj/{slug}: published profiles for everyone, drafts only for
        their owner. Returns (profile, is_draft) or None.
        """
        profile = self.repo.get_by_slug(self.db, normalize_slug(slug))
        if not profile:
            return None
        if profile.published:
            return PublicProfile.model_validate(profile), False
        if viewer and viewer.id == profile.user_id:
            return PublicProfile.model_validate(profile), True
        return None

    def get_legacy_slug(self, profile_id: str) -> Optional[str]:
        profile = self.repo.get_by_id(self.db, profile_id)
        return profile.slug if profile and profile.slug else None

    @staticmethod
    def checklist(profile: Optional[DjProfile]) -> list[ChecklistItem]:
        """Setup checklist shown on the dashboard overview"""

        def filled(value) -> bool:
            return bool(str(value or "").strip())

        return [
            ChecklistItem(label="Stage name", done=bool(profile) and filled(profile.stage_name)),
            ChecklistItem(label="Profile slug", done=bool(profile) and filled(profile.slug)),
            ChecklistItem(label="City", done=bool(profile) and filled(profile.city)),
            ChecklistItem(label="Bio", done=bool(profile) and filled(profile.bio)),
            ChecklistItem(
                label="Genres", done=bool(profile) and len(parse_genres(profile.genres)) > 0
            ),
            ChecklistItem(label="Booking rate", done=bool(profile) and bool(profile.rate)),
            ChecklistItem(label="Profile image", done=bool(profile) and filled(profile.avatar_url)),
        ]
