# solarconnect/services/payment_gateway.py
import logging
from typing import Any, Dict

import stripe

from ..config import settings
from ..errors import UpstreamError

logger = logging.getLogger(__name__)


class StripeGateway:
    """Thin adapter over Stripe PaymentIntents.

    Only the two calls the checkout flow needs are exposed, and both
    return plain dicts so callers never touch Stripe objects.
    """

    def __init__(self, api_key: str):
        self.api_key = api_key

    def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: Dict[str, str]
    ) -> Dict[str, Any]:
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount,
                currency=currency,
                metadata=metadata,
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent creation failed: {str(e)}")
            raise UpstreamError(f"Payment gateway error: {e.user_message or str(e)}") from e
        return {"id": intent.id, "client_secret": intent.client_secret}

    def retrieve_payment_intent(self, payment_intent_id: str) -> Dict[str, Any]:
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent lookup failed for {payment_intent_id}: {str(e)}")
            raise UpstreamError(f"Payment gateway error: {e.user_message or str(e)}") from e
        return {"status": intent.status, "client_secret": intent.client_secret}


def get_payment_gateway() -> StripeGateway:
    if not settings.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY not set; payments are unavailable")
        raise UpstreamError("Payment gateway is not configured")
    return StripeGateway(settings.stripe_secret_key)
