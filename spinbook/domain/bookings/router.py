"""Booking router - request intake, DJ dashboard, tracker and insert hook"""

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_user, require_dj
from ...config import HOOKS_SECRET
from ...constants import BOOKING_STATUSES
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...shared.validators import parse_genres
from ...templating import redirect_with, render
from ...webhook_security import constant_time_compare
from ..profiles.service import ProfileService
from .schemas import BookingForm, CheckoutRequest, CheckoutResponse, HookPayload
from .service import BookingFormError, BookingService, DepositLinkError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Bookings"])

rate_limit_booking = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="booking")

BOOKING_REASONS = {
    "missing_fields": "Missing required fields.",
    "bad_email": "Invalid email address.",
    "bad_date": "Invalid event date.",
    "dj_not_found": "DJ profile lookup failed.",
    "insert_failed": "Could not create request (database insert failed).",
    "server_exception": "Server error. Please try again.",
}


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def _request_path(request_id: str) -> str:
    return f"/dashboard/requests/{quote(request_id, safe='')}"


# ============================================================================
# PUBLIC BOOKING FORM
# ============================================================================


@router.get("/dj/{slug}/book")
async def booking_form(
    request: Request,
    slug: str,
    ok: Optional[str] = Query(None),
    reason: Optional[str] = Query(None),
    current_user: Optional[User] = Depends(get_optional_user),
    service: BookingService = Depends(get_booking_service),
):
    profile = service.get_bookable_profile(slug)
    reason = (reason or "").strip()
    return render(
        request,
        "book/form.html",
        {
            "current_user": current_user,
            "slug": slug,
            "profile": profile,
            "genres": parse_genres(profile.genres)[:6] if profile else [],
            "show_success": ok == "1",
            "show_error": ok == "0",
            "reason_text": BOOKING_REASONS.get(reason, f"Error: {reason}" if reason else ""),
        },
        status_code=200 if profile else 404,
    )


@router.post("/dj/{slug}/book")
async def submit_booking(
    slug: str,
    name: str = Form(""),
    email: str = Form(""),
    event_date: str = Form(""),
    location: str = Form(""),
    message: str = Form(""),
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(rate_limit_booking),
):
    form = BookingForm(
        name=name, email=email, event_date=event_date, location=location, message=message
    )
    path = f"/dj/{quote(slug, safe='')}/book"

    try:
        await service.submit_request(slug, form)
    except BookingFormError as e:
        return redirect_with(path, ok=0, reason=str(e))
    except Exception:
        logger.exception(f"❌ submit_booking failed for DJ '{slug}'")
        return redirect_with(path, ok=0, reason="server_exception")

    return redirect_with(path, ok=1)


# ============================================================================
# DJ DASHBOARD
# ============================================================================


@router.get("/dashboard")
async def dashboard_overview(
    request: Request,
    current_user: User = Depends(require_dj),
    service: BookingService = Depends(get_booking_service),
    db: Session = Depends(get_db),
):
    profile_service = ProfileService(db)
    profile = profile_service.get_profile(current_user)
    checklist = profile_service.checklist(profile)
    return render(
        request,
        "dashboard/overview.html",
        {
            "current_user": current_user,
            "profile": profile,
            "checklist": checklist,
            "completed": sum(1 for item in checklist if item.done),
            "new_count": service.count_new(current_user),
        },
    )


@router.get("/dashboard/requests")
async def list_requests(
    request: Request,
    status: Optional[str] = Query(None),
    current_user: User = Depends(require_dj),
    service: BookingService = Depends(get_booking_service),
):
    requests, status_filter = service.list_requests(current_user, status)
    return render(
        request,
        "dashboard/requests.html",
        {
            "current_user": current_user,
            "requests": requests,
            "status_filter": status_filter,
            "filters": ["all", *BOOKING_STATUSES],
            "new_count": service.count_new(current_user),
        },
    )


@router.get("/dashboard/requests/{request_id}")
async def request_detail(
    request: Request,
    request_id: str,
    msg: Optional[str] = Query(None),
    current_user: User = Depends(require_dj),
    service: BookingService = Depends(get_booking_service),
):
    try:
        booking = service.get_request(current_user, request_id)
    except HTTPException:
        return render(
            request,
            "dashboard/request_not_found.html",
            {"current_user": current_user},
            status_code=404,
        )

    return render(
        request,
        "dashboard/request_detail.html",
        {
            "current_user": current_user,
            "booking": booking,
            "fees": service.fee_summary(booking),
            "msg": msg,
        },
    )


@router.post("/dashboard/requests/{request_id}/accept")
async def accept_request(
    request_id: str,
    quoted_total: str = Form(""),
    current_user: User = Depends(require_dj),
    service: BookingService = Depends(get_booking_service),
):
    message = service.accept_and_quote(current_user, request_id, quoted_total)
    return redirect_with(_request_path(request_id), msg=message)


@router.post("/dashboard/requests/{request_id}/status")
async def set_request_status(
    request_id: str,
    status: str = Form(""),
    current_user: User = Depends(require_dj),
    service: BookingService = Depends(get_booking_service),
):
    message = await service.set_status(current_user, request_id, status)
    return redirect_with(_request_path(request_id), msg=message)


@router.post("/dashboard/requests/{request_id}/deposit-link")
async def create_deposit_link(
    request_id: str,
    current_user: User = Depends(require_dj),
    service: BookingService = Depends(get_booking_service),
):
    try:
        result = await service.ensure_deposit_link(current_user, request_id)
    except DepositLinkError as e:
        return redirect_with(_request_path(request_id), ok=0, msg=e.message)

    if result["email_sent"]:
        message = "Deposit link ready and emailed to the client."
    else:
        message = "Deposit link ready, but the email to the client failed. Share the link manually."
    return redirect_with(_request_path(request_id), ok=1, msg=message)


@router.post("/api/payments/checkout", response_model=CheckoutResponse)
async def create_checkout(
    body: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """JSON variant of the deposit link for the signed-in DJ"""
    if not body.rid:
        raise HTTPException(status_code=400, detail="Missing rid")

    try:
        result = await service.ensure_deposit_link(current_user, body.rid)
    except DepositLinkError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    return CheckoutResponse(url=result["url"], reused=result["reused"])


# ============================================================================
# NO-ACCOUNT TRACKER
# ============================================================================


@router.get("/r/{token}")
async def request_tracker(
    request: Request,
    token: str,
    current_user: Optional[User] = Depends(get_optional_user),
    service: BookingService = Depends(get_booking_service),
):
    view = service.get_tracker(token)
    if view is None:
        return render(
            request, "book/tracker_not_found.html", {"current_user": current_user}, status_code=404
        )
    return render(request, "book/tracker.html", {"current_user": current_user, "view": view})


# ============================================================================
# DATABASE INSERT HOOK
# ============================================================================


@router.post("/api/hooks/booking-request")
async def booking_request_hook(
    payload: HookPayload,
    x_hook_secret: Optional[str] = Header(None),
    service: BookingService = Depends(get_booking_service),
):
    """Called by the database on INSERT into booking_requests"""
    if not HOOKS_SECRET:
        logger.error("❌ HOOKS_SECRET not configured")
        raise HTTPException(status_code=500, detail="Hook not configured")
    if not constant_time_compare(x_hook_secret or "", HOOKS_SECRET):
        logger.warning("🚫 Booking hook called with invalid secret")
        raise HTTPException(status_code=401, detail="Unauthorized")

    return await service.notify_new_request(payload)


__all__ = ["router"]
