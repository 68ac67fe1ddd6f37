import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import create_document, ensure_indexes
from main import create_app
from payment_provider import ProviderSession
from schemas import Product


class FakeProvider:
    """Stands in for Stripe. Sessions are unpaid until ``mark_paid`` is called."""

    def __init__(self):
        self.created = []
        self.paid = set()

    def create_session(self, *, order_id, amount_cents, currency, success_url, cancel_url):
        session_id = f"cs_test_{len(self.created) + 1}"
        self.created.append(
            {
                "id": session_id,
                "order_id": order_id,
                "amount_cents": amount_cents,
                "currency": currency,
                "success_url": success_url,
                "cancel_url": cancel_url,
            }
        )
        return ProviderSession(id=session_id, url=f"https://checkout.stripe.test/{session_id}")

    def mark_paid(self, session_id):
        self.paid.add(session_id)

    def is_paid(self, session_id):
        return session_id in self.paid


@pytest.fixture
def settings():
    return Settings(jwt_secret="test-secret", seed_on_startup=False, client_origin="http://shop.test")


@pytest.fixture
def db():
    database = mongomock.MongoClient().db
    ensure_indexes(database)
    return database


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def app(settings, db, provider):
    return create_app(settings, db=db, provider=provider)


@pytest.fixture
def client(app):
    return TestClient(app)


def _product(db, name, price, category="Home", eco_rating="A", brand="GreenHome", featured=False):
    product = Product(
        name=name,
        brand=brand,
        category=category,
        description=f"{name} description",
        price=price,
        image="https://img.test/p.jpg",
        eco_rating=eco_rating,
        featured=featured,
    )
    return create_document(db, "product", product)


@pytest.fixture
def products(db):
    return {
        "p1": _product(db, "Bamboo Toothbrush", 10.00, featured=True),
        "p2": _product(db, "Produce Bags", 5.00, eco_rating="B", brand="EcoWear"),
        "p3": _product(db, "Plastic Bottles", 7.99, eco_rating="F", brand="HydroQuick"),
        "p4": _product(db, "Organic T-Shirt", 35.00, category="Clothing", brand="EcoWear", featured=True),
    }


def register_and_login(client, email="u1@ecocart.io", password="secret123", name="User One"):
    resp = client.post("/api/users/register", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 201, resp.text
    resp = client.post("/api/users/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    data = resp.json()
    return {"Authorization": f"Bearer {data['token']}"}, data["user"]


@pytest.fixture
def auth(client):
    headers, _ = register_and_login(client)
    return headers


@pytest.fixture
def user(client):
    headers, user = register_and_login(client, email="buyer@ecocart.io")
    return {"headers": headers, **user}
