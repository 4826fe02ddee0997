"""Card payments through Stripe."""
import logging

import stripe
from fastapi import Request

logger = logging.getLogger(__name__)


class StripePaymentGateway:
    def __init__(self, api_key: str, currency: str = "usd"):
        self.api_key = api_key
        self.currency = currency

    def create_payment_intent(self, amount: int) -> str:
        """Create a card PaymentIntent for ``amount`` cents and return its client secret."""
        intent = stripe.PaymentIntent.create(
            amount=amount,
            currency=self.currency,
            payment_method_types=["card"],
            api_key=self.api_key,
        )
        logger.info("Created payment intent for %s %s", amount, self.currency)
        return intent.client_secret


def get_payment_gateway(request: Request) -> StripePaymentGateway:
    return request.app.state.payments
