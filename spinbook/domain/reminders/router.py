"""Reminder router - cron entry point for balance reminders"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from ...config import CRON_SECRET
from ...database import get_db
from ...webhook_security import constant_time_compare
from .service import BalanceReminderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["Cron"])


def get_reminder_service(db: Session = Depends(get_db)) -> BalanceReminderService:
    """Dependency injection for BalanceReminderService"""
    return BalanceReminderService(db)


@router.get("/balance-reminder")
async def balance_reminder(
    authorization: Optional[str] = Header(None),
    service: BalanceReminderService = Depends(get_reminder_service),
):
    """Authorization: Bearer <CRON_SECRET>"""
    if not CRON_SECRET:
        logger.error("❌ CRON_SECRET not configured")
        raise HTTPException(status_code=500, detail="Missing CRON_SECRET")
    if not constant_time_compare(authorization or "", f"Bearer {CRON_SECRET}"):
        logger.warning("🚫 Balance reminder called with invalid authorization")
        raise HTTPException(status_code=401, detail="Unauthorized")

    return await service.run()


__all__ = ["router"]
