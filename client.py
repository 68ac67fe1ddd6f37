"""
Storefront API client with an offline demo mode

``StorefrontClient`` talks to the API through ``ApiBackend``. When the API
cannot be reached (timeout or transport failure) the client switches the
session to ``DemoBackend``, a local-only simulation. Everything the demo
backend returns carries ``simulated=True``; a simulated checkout is never a
real payment.
"""
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol

import httpx
import structlog

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 5.0
DEMO_NOTICE = "Using demo mode - API connection failed"
DEMO_ORDER_ID = "DEMO123"
DEMO_USER = {
    "id": "mock-user-123",
    "name": "Demo User",
    "email": "demo@ecocart.io",
    "phone": None,
    "address": {"street": "123 Eco Street", "city": "Green City", "state": "Nature State", "zip_code": "12345"},
}


class BackendUnavailable(Exception):
    """The API could not be reached at all."""


class ApiError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


@dataclass
class CheckoutOutcome:
    redirect_url: Optional[str] = None
    checkout_url: Optional[str] = None
    order_id: Optional[str] = None
    session_id: Optional[str] = None
    simulated: bool = False


class StorefrontBackend(Protocol):
    simulated: bool

    def login(self, email: str, password: str) -> dict: ...

    def list_products(self, **filters) -> List[dict]: ...

    def get_cart(self) -> List[dict]: ...

    def add_to_cart(self, product: dict, quantity: int = 1) -> List[dict]: ...

    def update_quantity(self, product_id: str, quantity: int) -> List[dict]: ...

    def remove_from_cart(self, product_id: str) -> List[dict]: ...

    def clear_cart(self) -> None: ...

    def checkout(self, payment_method: str) -> CheckoutOutcome: ...

    def confirm_payment(self, session_id: str) -> bool: ...


class ApiBackend:
    simulated = False

    def __init__(self, base_url: str = "", http: Optional[httpx.Client] = None, timeout: float = DEFAULT_TIMEOUT):
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.token: Optional[str] = None

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self.http.request(method, f"/api{path}", headers=headers, **kwargs)
        except httpx.TransportError as e:
            raise BackendUnavailable(str(e)) from e
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            raise ApiError(response.status_code, str(detail))
        return response.json()

    def login(self, email, password):
        data = self._request("POST", "/users/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data["user"]

    def list_products(self, **filters):
        params = {k: v for k, v in filters.items() if v is not None}
        return self._request("GET", "/products", params=params)

    def get_cart(self):
        return self._request("GET", "/cart")["items"]

    def add_to_cart(self, product, quantity=1):
        return self._request("POST", "/cart/add", json={"product_id": product["id"], "quantity": quantity})["items"]

    def update_quantity(self, product_id, quantity):
        return self._request("PATCH", f"/cart/update/{product_id}", json={"quantity": quantity})["items"]

    def remove_from_cart(self, product_id):
        return self._request("DELETE", f"/cart/remove/{product_id}")["items"]

    def clear_cart(self):
        self._request("DELETE", "/cart/clear")

    def checkout(self, payment_method):
        order = self._request("POST", "/orders", json={})
        data = self._request(
            "POST", "/payments/create-checkout-session", json={"order_id": order["id"], "payment_method": payment_method}
        )
        return CheckoutOutcome(
            redirect_url=data.get("redirect_url"),
            checkout_url=data.get("url"),
            order_id=order["id"],
            session_id=data.get("session_id"),
        )

    def confirm_payment(self, session_id):
        return bool(self._request("POST", "/payments/confirm-payment", json={"session_id": session_id}).get("success"))


@dataclass
class DemoBackend:
    """Local stand-in for the API. Nothing here leaves the process."""

    simulated = True
    items: List[Dict[str, Any]] = field(default_factory=list)
    products: List[dict] = field(default_factory=list)
    token: Optional[str] = None

    def login(self, email, password):
        self.token = f"demo-token-{int(time.time() * 1000)}"
        return dict(DEMO_USER)

    def list_products(self, **filters):
        return list(self.products)

    def get_cart(self):
        return [dict(i) for i in self.items]

    def add_to_cart(self, product, quantity=1):
        for item in self.items:
            if item["product_id"] == product["id"]:
                item["quantity"] += quantity
                break
        else:
            self.items.append({"product_id": product["id"], "quantity": quantity, "product": product})
        return self.get_cart()

    def update_quantity(self, product_id, quantity):
        for item in self.items:
            if item["product_id"] == product_id:
                item["quantity"] = max(1, quantity)
        return self.get_cart()

    def remove_from_cart(self, product_id):
        self.items = [i for i in self.items if i["product_id"] != product_id]
        return self.get_cart()

    def clear_cart(self):
        self.items = []

    def checkout(self, payment_method):
        self.items = []
        return CheckoutOutcome(
            redirect_url=f"/payment-success?order_id={DEMO_ORDER_ID}&method={payment_method}",
            order_id=DEMO_ORDER_ID,
            simulated=True,
        )

    def confirm_payment(self, session_id):
        return False


class StorefrontClient:
    """
    Front door used by UI code. Calls go to ``primary`` until it raises
    BackendUnavailable; from then on this client session runs on ``fallback``.
    """

    def __init__(
        self,
        primary: StorefrontBackend,
        fallback: Optional[StorefrontBackend] = None,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.primary = primary
        self.fallback = fallback or DemoBackend()
        self.notify = notify or (lambda message: logger.info("client_notice", message=message))
        self.demo_mode = False
        self._demo_notice_shown = False

    @property
    def backend(self) -> StorefrontBackend:
        return self.fallback if self.demo_mode else self.primary

    def enable_demo_mode(self) -> None:
        self.demo_mode = True
        if not self._demo_notice_shown:
            self._demo_notice_shown = True
            self.notify(DEMO_NOTICE)

    def reset_demo_notice(self) -> None:
        self._demo_notice_shown = False

    def _call(self, name: str, *args, **kwargs):
        if not self.demo_mode:
            try:
                return getattr(self.primary, name)(*args, **kwargs)
            except BackendUnavailable as e:
                logger.warning("api_unreachable", call=name, error=str(e))
                self.enable_demo_mode()
        return getattr(self.fallback, name)(*args, **kwargs)

    def login(self, email: str, password: str) -> dict:
        return self._call("login", email, password)

    def list_products(self, **filters) -> List[dict]:
        return self._call("list_products", **filters)

    def get_cart(self) -> List[dict]:
        return self._call("get_cart")

    def add_to_cart(self, product: dict, quantity: int = 1) -> List[dict]:
        return self._call("add_to_cart", product, quantity)

    def update_quantity(self, product_id: str, quantity: int) -> List[dict]:
        return self._call("update_quantity", product_id, quantity)

    def remove_from_cart(self, product_id: str) -> List[dict]:
        return self._call("remove_from_cart", product_id)

    def clear_cart(self) -> None:
        self._call("clear_cart")

    def checkout(self, payment_method: str = "card") -> CheckoutOutcome:
        if not self.get_cart():
            raise ValueError("Your cart is empty")
        return self._call("checkout", payment_method)

    def confirm_payment(self, session_id: str) -> bool:
        return self._call("confirm_payment", session_id)
