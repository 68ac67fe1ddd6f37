from types import SimpleNamespace

import pytest
import stripe

from config import Settings
from errors import ProviderError
from payment_provider import MOCK_CHECKOUT_URL, MockProvider, StripeProvider, build_provider, to_minor_units
from test_checkout import checkout, place_order


@pytest.mark.parametrize("amount, cents", [(25.0, 2500), (19.99, 1999), (0.1 + 0.2, 30), (10.005, 1001)])
def test_to_minor_units(amount, cents):
    assert to_minor_units(amount) == cents


def session_kwargs():
    return dict(order_id="o1", amount_cents=1999, currency="usd", success_url="https://s", cancel_url="https://c")


def test_mock_provider_sessions_are_labelled():
    provider = MockProvider()
    session = provider.create_session(**session_kwargs())
    assert session.mock is True
    assert session.url == MOCK_CHECKOUT_URL
    assert provider.is_paid(session.id)
    assert not provider.is_paid("cs_live_123")


def test_build_provider_depends_on_secret_key():
    assert isinstance(build_provider(Settings()), MockProvider)
    assert isinstance(build_provider(Settings(stripe_secret_key="sk_test_123")), StripeProvider)


def test_stripe_provider_creates_session(monkeypatch):
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(id="cs_123", url="https://checkout.stripe.com/pay/cs_123")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    session = StripeProvider("sk_test_123").create_session(**session_kwargs())

    assert session.id == "cs_123"
    assert session.mock is False
    sent = calls[0]
    assert sent["api_key"] == "sk_test_123"
    assert sent["mode"] == "payment"
    assert sent["line_items"][0]["price_data"]["unit_amount"] == 1999
    assert sent["line_items"][0]["price_data"]["product_data"]["name"] == "Order #o1"
    assert sent["success_url"] == "https://s"
    assert sent["cancel_url"] == "https://c"


@pytest.mark.parametrize("status, paid", [("paid", True), ("unpaid", False), ("no_payment_required", False)])
def test_stripe_provider_payment_status(monkeypatch, status, paid):
    monkeypatch.setattr(
        stripe.checkout.Session, "retrieve", lambda session_id, **kw: SimpleNamespace(id=session_id, payment_status=status)
    )
    assert StripeProvider("sk_test_123").is_paid("cs_123") is paid


def test_stripe_errors_become_provider_errors(monkeypatch):
    def boom(*args, **kwargs):
        raise stripe.StripeError("card network down")

    monkeypatch.setattr(stripe.checkout.Session, "create", boom)
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", boom)
    provider = StripeProvider("sk_test_123")
    with pytest.raises(ProviderError):
        provider.create_session(**session_kwargs())
    with pytest.raises(ProviderError):
        provider.is_paid("cs_123")


def test_provider_error_is_reported_without_details(client, auth, products, provider, monkeypatch):
    def failing(**kwargs):
        raise ProviderError("Payment provider error")

    monkeypatch.setattr(provider, "create_session", failing)
    order_id = place_order(client, auth, products)
    resp = checkout(client, auth, order_id, "card")
    assert resp.status_code == 502
    assert resp.json() == {"detail": "Payment provider error"}
