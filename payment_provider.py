"""
Hosted card checkout providers

``StripeProvider`` talks to Stripe Checkout. ``MockProvider`` is used when no
secret key is configured so the card flow can be demoed without credentials;
its sessions are flagged ``mock=True`` and never represent real money.
"""
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

import stripe
import structlog

from config import Settings
from errors import ProviderError

logger = structlog.get_logger(__name__)

MOCK_CHECKOUT_URL = "https://example.com/mock-checkout"
MOCK_SESSION_PREFIX = "mock-session-"


@dataclass(frozen=True)
class ProviderSession:
    id: str
    url: str
    mock: bool = False


class PaymentProvider(Protocol):
    def create_session(
        self, *, order_id: str, amount_cents: int, currency: str, success_url: str, cancel_url: str
    ) -> ProviderSession: ...

    def is_paid(self, session_id: str) -> bool: ...


def to_minor_units(amount: float) -> int:
    """Convert a decimal amount to the provider's integer minor units (cents)."""
    cents = (Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


class StripeProvider:
    def __init__(self, secret_key: str):
        self._api_key = secret_key

    def create_session(self, *, order_id, amount_cents, currency, success_url, cancel_url):
        try:
            session = stripe.checkout.Session.create(
                api_key=self._api_key,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "product_data": {
                                "name": f"Order #{order_id}",
                                "description": f"Payment for order {order_id}",
                            },
                            "unit_amount": amount_cents,
                        },
                        "quantity": 1,
                    }
                ],
                mode="payment",
                success_url=success_url,
                cancel_url=cancel_url,
                metadata={"order_id": order_id},
            )
        except stripe.StripeError as e:
            logger.error("stripe_session_create_failed", order_id=order_id, error=str(e))
            raise ProviderError("Payment provider error") from e
        return ProviderSession(id=session.id, url=session.url)

    def is_paid(self, session_id):
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self._api_key)
        except stripe.StripeError as e:
            logger.error("stripe_session_retrieve_failed", session_id=session_id, error=str(e))
            raise ProviderError("Payment provider error") from e
        return session.payment_status == "paid"


class MockProvider:
    def create_session(self, *, order_id, amount_cents, currency, success_url, cancel_url):
        logger.warning("mock_checkout_session", order_id=order_id, amount_cents=amount_cents)
        session_id = f"{MOCK_SESSION_PREFIX}{int(time.time() * 1000)}"
        return ProviderSession(id=session_id, url=MOCK_CHECKOUT_URL, mock=True)

    def is_paid(self, session_id):
        return session_id.startswith(MOCK_SESSION_PREFIX)


def build_provider(settings: Settings) -> PaymentProvider:
    if settings.stripe_secret_key:
        return StripeProvider(settings.stripe_secret_key)
    logger.warning("stripe_secret_key_missing", detail="card payments use the mock provider")
    return MockProvider()
