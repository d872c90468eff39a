"""Static marketing pages and health check"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from ..auth import get_optional_user
from ..constants import DEPOSIT_AMOUNT_CENTS, MIN_QUOTED_TOTAL
from ..models import User
from ..templating import render

router = APIRouter(tags=["Pages"])


@router.get("/")
async def landing(request: Request, current_user: Optional[User] = Depends(get_optional_user)):
    return render(
        request,
        "index.html",
        {
            "current_user": current_user,
            "deposit_amount": DEPOSIT_AMOUNT_CENTS // 100,
            "min_quote": MIN_QUOTED_TOTAL,
        },
    )


@router.get("/contact")
async def contact(request: Request, current_user: Optional[User] = Depends(get_optional_user)):
    return render(request, "contact.html", {"current_user": current_user})


@router.get("/health")
async def health_check():
    return {"status": "healthy"}
