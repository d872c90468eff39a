"""Waitlist service - Founding DJ waitlist applications"""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...constants import EXPERIENCE_BANDS
from ...email_service import EmailDeliveryError, send_waitlist_confirmation_email
from ...security_middleware import use_service_role
from .repository import WaitlistRepository
from .schemas import WaitlistForm

logger = logging.getLogger(__name__)


class WaitlistError(ValueError):
    """Application rejected; str(e) is the error code for the page banner"""


class WaitlistService:
    """Service layer for waitlist business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = WaitlistRepository()

    async def apply(self, form: WaitlistForm) -> bool:
        """
        Store an application and send the confirmation email.

        Re-applying with an email already on the list is accepted silently.
        Returns True when the confirmation email went out.
        Raises WaitlistError("missing" | "submit") on rejection.
        """
        if not form.stage_name or not form.email or not form.city or not form.experience_band:
            raise WaitlistError("missing")
        if form.experience_band not in EXPERIENCE_BANDS:
            raise WaitlistError("missing")

        use_service_role(self.db)
        if self.repo.get_by_email(self.db, form.email):
            logger.info(f"🔄 Waitlist application already on file: {form.email}")
        else:
            try:
                self.repo.create_entry(
                    self.db,
                    stage_name=form.stage_name,
                    email=form.email,
                    city=form.city,
                    experience_band=form.experience_band,
                    status="pending",
                )
                logger.info(f"✅ Waitlist application stored: {form.email}")
            except IntegrityError:
                # Concurrent duplicate of the same email
                self.db.rollback()
                logger.info(f"🔄 Waitlist application already on file: {form.email}")
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"❌ Waitlist insert failed for {form.email}: {e}")
                raise WaitlistError("submit") from e

        try:
            await send_waitlist_confirmation_email(
                to=form.email,
                stage_name=form.stage_name,
                city=form.city,
                experience_band=form.experience_band,
            )
        except EmailDeliveryError as e:
            logger.warning(f"⚠️ Waitlist confirmation email failed for {form.email}: {e}")
            return False
        return True
