"""Waitlist router - Founding DJ waitlist page and form"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_optional_user
from ...constants import EXPERIENCE_BANDS
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...templating import redirect_with, render
from .schemas import WaitlistForm
from .service import WaitlistError, WaitlistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dj-waitlist", tags=["Waitlist"])

rate_limit_waitlist = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="waitlist")


def get_waitlist_service(db: Session = Depends(get_db)) -> WaitlistService:
    """Dependency injection for WaitlistService"""
    return WaitlistService(db)


@router.get("")
async def waitlist_page(
    request: Request,
    submitted: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    email: Optional[str] = Query(None),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return render(
        request,
        "waitlist.html",
        {
            "current_user": current_user,
            "submitted": submitted == "1",
            "error": error,
            "email_failed": email == "failed",
            "experience_bands": EXPERIENCE_BANDS,
        },
    )


@router.post("")
async def submit_waitlist(
    stage_name: str = Form(""),
    email: str = Form(""),
    city: str = Form(""),
    experience_band: str = Form(""),
    service: WaitlistService = Depends(get_waitlist_service),
    _: None = Depends(rate_limit_waitlist),
):
    form = WaitlistForm(
        stage_name=stage_name, email=email, city=city, experience_band=experience_band
    )
    try:
        email_sent = await service.apply(form)
    except WaitlistError as e:
        return redirect_with("/dj-waitlist", error=str(e))

    if not email_sent:
        return redirect_with("/dj-waitlist", submitted=1, email="failed")
    return redirect_with("/dj-waitlist", submitted=1)


__all__ = ["router"]
