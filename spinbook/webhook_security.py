"""
Webhook signature verification (Standard Webhooks, as sent by Dodo Payments).

Signed message: "{webhook-id}.{webhook-timestamp}.{raw body}", HMAC-SHA256 with
the base64-decoded part of the "whsec_" secret, base64 encoded, sent as one or
more space separated "v1,<signature>" entries in the webhook-signature header.
"""

import base64
import binascii
import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300


def constant_time_compare(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def extract_signing_key(secret: str) -> bytes:
    """
    Signing key bytes from a "whsec_BASE64KEY" secret.
    Secrets that are not valid base64 are used as raw UTF-8 bytes.
    """
    b64_part = secret[6:] if secret.startswith("whsec_") else secret
    try:
        return base64.b64decode(b64_part, validate=True)
    except (binascii.Error, ValueError):
        return secret.encode("utf-8")


def compute_signature(secret: str, webhook_id: str, timestamp: str, payload: bytes) -> str:
    signed_message = b".".join([webhook_id.encode("utf-8"), timestamp.encode("utf-8"), payload])
    digest = hmac.new(extract_signing_key(secret), signed_message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    """Reject webhooks outside the replay window"""
    try:
        age = abs(int(time.time()) - int(timestamp or ""))
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


async def verify_dodo_webhook(request: Request, secret: str) -> bytes:
    """
    Verify a Dodo Payments webhook and return the raw body.

    Raises HTTPException(401) when headers are missing, the timestamp is stale
    or no signature matches.
    """
    raw_body = await request.body()

    signature_header = request.headers.get("webhook-signature", "")
    timestamp = request.headers.get("webhook-timestamp", "")
    webhook_id = request.headers.get("webhook-id", "")

    logger.info(f"📥 Dodo webhook received: id={webhook_id or 'unknown'}")

    if not signature_header or not timestamp or not webhook_id:
        logger.error("❌ Missing webhook-id, webhook-timestamp or webhook-signature header")
        raise HTTPException(status_code=401, detail="Missing webhook signature headers")

    if not verify_timestamp(timestamp):
        raise HTTPException(status_code=401, detail="Webhook timestamp expired")

    expected = compute_signature(secret, webhook_id, timestamp, raw_body)
    received = [
        entry[3:] for entry in signature_header.split() if entry.startswith("v1,")
    ]

    if any(constant_time_compare(expected, sig) for sig in received):
        logger.info(f"✅ Dodo webhook signature verified: {webhook_id}")
        return raw_body

    logger.error(f"❌ Dodo webhook signature mismatch for {webhook_id}")
    raise HTTPException(status_code=401, detail="Invalid webhook signature")
