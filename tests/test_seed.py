from seed import DEMO_PRODUCTS, SAMPLE_USER_EMAIL, SAMPLE_USER_PASSWORD, seed_database


def test_seed_populates_empty_database(db):
    created = seed_database(db)
    assert created == {"products": len(DEMO_PRODUCTS), "users": 1}
    assert db["product"].count_documents({"featured": True}) == 4


def test_seed_is_idempotent(db):
    seed_database(db)
    assert seed_database(db) == {"products": 0, "users": 0}
    assert db["product"].count_documents({}) == len(DEMO_PRODUCTS)


def test_sample_user_can_log_in(client, db):
    seed_database(db)
    resp = client.post("/api/users/login", json={"email": SAMPLE_USER_EMAIL, "password": SAMPLE_USER_PASSWORD})
    assert resp.status_code == 200
    assert resp.json()["user"]["name"] == "Test User"


def test_seed_endpoint(client, db):
    resp = client.post("/api/seed")
    assert resp.status_code == 200
    assert resp.json()["seeded"]["products"] == len(DEMO_PRODUCTS)
    assert len(client.get("/api/products/featured").json()) == 4
