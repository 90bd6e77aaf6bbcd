"""Stripe integration for charging the client's card on file."""

import asyncio
import logging
from typing import Optional

import stripe

from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class StripeClient:
    """Off-session card charges via PaymentIntents."""

    def __init__(self):
        self.api_key = settings.STRIPE_SECRET_KEY
        self.currency = settings.STRIPE_CURRENCY

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def charge_card_on_file(
        self,
        amount_cents: int,
        payment_method_id: str,
        customer_id: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> dict:
        """
        Create and confirm a PaymentIntent against a saved card.
        Returns dict with 'id' and 'status'. Card declines raise stripe.CardError.
        """
        if not self.configured:
            logger.info("[DEV] Charge %s cents on %s", amount_cents, payment_method_id)
            return {"id": "dev_mode", "status": "succeeded"}

        # Stripe SDK is synchronous, run in executor
        loop = asyncio.get_running_loop()
        intent = await loop.run_in_executor(
            None,
            lambda: stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=amount_cents,
                currency=self.currency,
                customer=customer_id,
                payment_method=payment_method_id,
                off_session=True,
                confirm=True,
                metadata=metadata or {},
            )
        )
        return {"id": intent.id, "status": intent.status}

    async def refund(self, payment_intent_id: str, amount_cents: int) -> dict:
        """Refund part of a captured PaymentIntent."""
        if not self.configured or payment_intent_id == "dev_mode":
            logger.info("[DEV] Refund %s cents on %s", amount_cents, payment_intent_id)
            return {"id": "dev_mode", "status": "succeeded"}

        loop = asyncio.get_running_loop()
        refund = await loop.run_in_executor(
            None,
            lambda: stripe.Refund.create(
                api_key=self.api_key,
                payment_intent=payment_intent_id,
                amount=amount_cents,
            )
        )
        return {"id": refund.id, "status": refund.status}
