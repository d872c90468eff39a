"""Payment router - Dodo Payments webhook and checkout return pages"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_optional_user
from ...config import DODO_PAYMENTS_WEBHOOK_SECRET
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...templating import redirect_with, render
from ...webhook_security import verify_dodo_webhook
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Payments"])

rate_limit_payment_webhook = create_rate_limiter(
    limit=100, window_seconds=60, key_prefix="dodo_webhook", use_ip=False
)

# Return-URL statuses that mean the payer did not complete checkout
UNPAID_RETURN_STATUSES = {"failed", "cancelled", "canceled", "expired", "requires_payment_method"}


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db)


# ============================================================================
# WEBHOOK
# ============================================================================


@router.post("/webhooks/dodopayments")
async def handle_dodopayments_webhook(
    request: Request,
    service: PaymentService = Depends(get_payment_service),
    _: None = Depends(rate_limit_payment_webhook),
):
    """
    Verify signature and record booking deposits.

    Headers:
      - 'webhook-signature': 'v1,{base64(hmac_sha256(webhook-id.webhook-timestamp.payload))}'
      - 'webhook-id': Unique webhook ID
      - 'webhook-timestamp': Unix timestamp (seconds)
    """
    if not DODO_PAYMENTS_WEBHOOK_SECRET:
        logger.error("❌ DODO_PAYMENTS_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook not configured")

    raw_body = await verify_dodo_webhook(request, DODO_PAYMENTS_WEBHOOK_SECRET)

    try:
        event = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error(f"Failed to parse webhook JSON: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    logger.info(f"🔔 Webhook received id={request.headers.get('webhook-id')} type={event.get('type')}")
    return service.handle_event(event)


# ============================================================================
# CHECKOUT RETURN PAGES
# ============================================================================


@router.get("/book/return")
async def checkout_return(
    rid: Optional[str] = Query(None),
    dj: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
):
    """Dodo sends the payer back here with ?status=; route to success or cancel"""
    outcome = (status or "").strip().lower()
    target = "/book/cancel" if outcome in UNPAID_RETURN_STATUSES else "/book/success"
    return redirect_with(target, rid=rid, dj=dj)


@router.get("/book/success")
async def checkout_success(
    request: Request,
    rid: Optional[str] = Query(None),
    dj: Optional[str] = Query(None),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return render(
        request,
        "book/success.html",
        {"current_user": current_user, "rid": rid, "dj": dj},
    )


@router.get("/book/cancel")
async def checkout_cancel(
    request: Request,
    rid: Optional[str] = Query(None),
    dj: Optional[str] = Query(None),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return render(
        request,
        "book/cancel.html",
        {"current_user": current_user, "rid": rid, "dj": dj},
    )


__all__ = ["router"]
