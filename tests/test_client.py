import httpx
import pytest

from client import DEFAULT_TIMEOUT, DEMO_NOTICE, DEMO_ORDER_ID, ApiBackend, ApiError, DemoBackend, StorefrontClient
from conftest import register_and_login


def unreachable_backend():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    return ApiBackend(http=httpx.Client(transport=httpx.MockTransport(handler), base_url="http://api.test"))


@pytest.fixture
def api(client):
    register_and_login(client, email="shopper@ecocart.io")
    backend = ApiBackend(http=client)
    backend.login("shopper@ecocart.io", "secret123")
    return backend


def test_api_backend_checkout_round_trip(api, products, db):
    shop = StorefrontClient(api)
    catalog = {p["name"]: p for p in shop.list_products()}
    shop.add_to_cart(catalog["Bamboo Toothbrush"], 2)
    items = shop.add_to_cart(catalog["Produce Bags"], 1)
    assert {i["product_id"]: i["quantity"] for i in items} == {products["p1"]: 2, products["p2"]: 1}

    outcome = shop.checkout("cod")
    assert outcome.simulated is False
    assert "method=cod" in outcome.redirect_url
    assert outcome.order_id in outcome.redirect_url
    assert shop.get_cart() == []
    assert shop.demo_mode is False


def test_api_errors_do_not_switch_to_demo_mode(client):
    shop = StorefrontClient(ApiBackend(http=client))
    with pytest.raises(ApiError) as exc:
        shop.login("nobody@ecocart.io", "wrong-password")
    assert exc.value.status_code == 401
    assert shop.demo_mode is False


def test_unreachable_api_falls_back_to_demo_once():
    notices = []
    shop = StorefrontClient(unreachable_backend(), notify=notices.append)

    user = shop.login("someone@ecocart.io", "secret123")
    assert shop.demo_mode is True
    assert user["name"] == "Demo User"

    product = {"id": "p1", "name": "Bamboo Toothbrush", "price": 10.0}
    shop.add_to_cart(product, 2)
    items = shop.add_to_cart(product, 3)
    assert [(i["product_id"], i["quantity"]) for i in items] == [("p1", 5)]
    assert notices == [DEMO_NOTICE]


def test_timed_out_api_falls_back_to_demo_once():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        raise httpx.ReadTimeout("timed out", request=request)

    backend = ApiBackend(http=httpx.Client(transport=httpx.MockTransport(handler), base_url="http://api.test"))
    notices = []
    shop = StorefrontClient(backend, notify=notices.append)

    assert shop.list_products() == []
    assert shop.demo_mode is True
    shop.get_cart()
    shop.add_to_cart({"id": "p1", "name": "Jute Bag", "price": 4.5})
    outcome = shop.checkout("card")
    assert outcome.simulated is True
    assert calls == ["/api/products"]
    assert notices == [DEMO_NOTICE]


def test_api_backend_uses_five_second_timeout():
    backend = ApiBackend("http://api.test")
    assert backend.http.timeout == httpx.Timeout(DEFAULT_TIMEOUT)
    assert DEFAULT_TIMEOUT == 5.0


def test_demo_checkout_is_labelled_simulated():
    shop = StorefrontClient(unreachable_backend(), notify=lambda message: None)
    shop.add_to_cart({"id": "p1", "name": "Bags", "price": 5.0})
    outcome = shop.checkout("upi")
    assert outcome.simulated is True
    assert outcome.redirect_url == f"/payment-success?order_id={DEMO_ORDER_ID}&method=upi"
    assert shop.get_cart() == []
    assert shop.confirm_payment("anything") is False


def test_checkout_with_empty_cart():
    shop = StorefrontClient(DemoBackend())
    with pytest.raises(ValueError):
        shop.checkout("cod")


def test_demo_backend_cart_operations():
    demo = DemoBackend()
    demo.add_to_cart({"id": "a"}, 1)
    demo.add_to_cart({"id": "b"}, 2)
    demo.update_quantity("a", 0)
    assert [(i["product_id"], i["quantity"]) for i in demo.get_cart()] == [("a", 1), ("b", 2)]
    demo.remove_from_cart("a")
    assert [i["product_id"] for i in demo.get_cart()] == ["b"]
    demo.clear_cart()
    assert demo.get_cart() == []


def test_demo_notice_can_be_reset():
    notices = []
    shop = StorefrontClient(DemoBackend(), notify=notices.append)
    shop.enable_demo_mode()
    shop.enable_demo_mode()
    shop.reset_demo_notice()
    shop.enable_demo_mode()
    assert notices == [DEMO_NOTICE, DEMO_NOTICE]
