"""Dodo Payments service - Deposit checkouts through the Dodo Payments API"""

import logging
from typing import Optional

from dodopayments import AsyncDodoPayments  # type: ignore

from ...config import (
    DODO_ADHOC_PRODUCT_ID,
    DODO_PAYMENTS_API_KEY,
    DODO_PAYMENTS_ENVIRONMENT,
)

logger = logging.getLogger(__name__)


class PaymentProviderError(Exception):
    """Dodo Payments is not configured or rejected the request"""


def normalize_dodo_environment(env: Optional[str]) -> str:
    """Normalize Dodo environment value to expected format"""
    value = (env or "test_mode").strip().lower()
    if value in {"live", "production", "prod"}:
        return "live_mode"
    if value in {"test", "sandbox", "staging", "dev", "development"}:
        return "test_mode"
    if value in {"test_mode", "live_mode"}:
        return value
    logger.warning(f"Unknown DODO environment '{env}', defaulting to test_mode")
    return "test_mode"


def _read(obj, field: str):
    """SDK responses are models; tests and older SDKs hand back dicts"""
    value = getattr(obj, field, None)
    if value is None and isinstance(obj, dict):
        value = obj.get(field)
    return value


class DodoPaymentsService:
    """Service for Dodo Payments API operations"""

    def __init__(self):
        self.api_key = DODO_PAYMENTS_API_KEY
        self.environment = normalize_dodo_environment(DODO_PAYMENTS_ENVIRONMENT)
        self.product_id = DODO_ADHOC_PRODUCT_ID
        self.client = None

        if not self.api_key:
            logger.warning(
                "DODO_PAYMENTS_API_KEY not set; deposit checkouts will fail until configured"
            )
        else:
            try:
                self.client = AsyncDodoPayments(
                    bearer_token=self.api_key,
                    environment=self.environment,
                )
                logger.info(f"Dodo Payments client initialized (env={self.environment})")
            except Exception as e:
                logger.error(f"Failed to initialize Dodo client (env={self.environment}): {e}")
                self.client = None

    def is_available(self) -> bool:
        """Check if Dodo Payments client is available"""
        return self.client is not None and bool(self.product_id)

    async def create_deposit_checkout(
        self,
        amount_cents: int,
        customer_email: str,
        customer_name: str,
        return_url: str,
        metadata: dict,
    ) -> dict:
        """
        Create a one-off checkout for a booking deposit.

        Uses the pay-what-you-want adhoc product with a fixed amount in cents.
        Metadata values are sent as strings.

        Returns:
            {"checkout_url": str, "session_id": str | None}
        """
        if not self.is_available():
            raise PaymentProviderError("Dodo Payments client not initialized")

        try:
            session = await self.client.checkout_sessions.create(
                product_cart=[
                    {"product_id": self.product_id, "quantity": 1, "amount": amount_cents}
                ],
                customer={"email": customer_email, "name": customer_name or ""},
                metadata={k: str(v) for k, v in metadata.items() if v is not None},
                return_url=return_url,
            )
        except Exception as e:
            logger.error(f"Failed to create deposit checkout: {e}")
            raise PaymentProviderError(str(e)) from e

        checkout_url = _read(session, "checkout_url") or _read(session, "url")
        session_id = _read(session, "session_id")
        if not checkout_url:
            logger.error(f"Unexpected session response: {session}")
            raise PaymentProviderError("Invalid checkout session response")

        logger.info(f"✅ Deposit checkout created session_id={session_id}")
        return {"checkout_url": checkout_url, "session_id": session_id}


# Singleton instance
dodo_service = DodoPaymentsService()
