"""Demo catalog and sample account, inserted only into an empty database."""
import structlog
from pymongo.database import Database
from pymongo.errors import PyMongoError

from auth import hash_password
from database import create_document
from schemas import Address, Product, User

logger = structlog.get_logger(__name__)

SAMPLE_USER_EMAIL = "test@ecocart.io"
SAMPLE_USER_PASSWORD = "password123"

DEMO_PRODUCTS = [
    {
        "name": "Organic Cotton T-Shirt",
        "brand": "EcoWear",
        "category": "Clothing",
        "description": "Made from 100% organic cotton, this t-shirt is soft, sustainable, and ethically produced.",
        "price": 35.00,
        "image": "https://images.unsplash.com/photo-1581655353564-df123a1eb820",
        "eco_rating": "A",
        "featured": True,
    },
    {
        "name": "Bamboo Toothbrush Set",
        "brand": "GreenHome",
        "category": "Home",
        "description": "Biodegradable bamboo toothbrushes with plant-based bristles. Reduces plastic waste.",
        "price": 14.99,
        "image": "https://images.unsplash.com/photo-1603316033975-ec7514ece812",
        "eco_rating": "A",
        "featured": True,
    },
    {
        "name": "Recycled Glass Water Bottle",
        "brand": "TerraCycle",
        "category": "Home",
        "description": "Made from 100% recycled glass with a silicone protective sleeve and stainless steel cap.",
        "price": 24.99,
        "image": "https://images.unsplash.com/photo-1624797432677-6f803a8d3902",
        "eco_rating": "A",
    },
    {
        "name": "All-Natural Shower Gel",
        "brand": "NaturalBeauty",
        "category": "Beauty",
        "description": "Made with organic ingredients and essential oils. Free from synthetic chemicals.",
        "price": 18.50,
        "image": "https://images.unsplash.com/photo-1599305090598-fe179d501227",
        "eco_rating": "B",
    },
    {
        "name": "Hemp Backpack",
        "brand": "EcoWear",
        "category": "Accessories",
        "description": "Durable backpack made from sustainable hemp with organic cotton lining.",
        "price": 59.99,
        "image": "https://images.unsplash.com/photo-1581605405669-fcdf81165afa",
        "eco_rating": "A",
        "featured": True,
    },
    {
        "name": "Reusable Produce Bags - Set of 5",
        "brand": "GreenHome",
        "category": "Home",
        "description": "Mesh bags made from recycled materials. Perfect for grocery shopping.",
        "price": 12.99,
        "image": "https://images.unsplash.com/photo-1610500796385-3ffc1ae2fccb",
        "eco_rating": "A",
    },
    {
        "name": "Organic Lip Balm",
        "brand": "NaturalBeauty",
        "category": "Beauty",
        "description": "Made with organic beeswax, coconut oil, and essential oils.",
        "price": 8.99,
        "image": "https://images.unsplash.com/photo-1599305090598-fe179d501227",
        "eco_rating": "B",
    },
    {
        "name": "Compostable Phone Case",
        "brand": "TerraCycle",
        "category": "Electronics",
        "description": "Made from plant-based materials that biodegrade when composted.",
        "price": 29.99,
        "image": "https://images.unsplash.com/photo-1606148556656-072fb8bade5c",
        "eco_rating": "A",
        "featured": True,
    },
    {
        "name": "Fast Fashion T-Shirt",
        "brand": "QuickTrends",
        "category": "Clothing",
        "description": "Trendy t-shirt made from conventional cotton.",
        "price": 15.99,
        "image": "https://images.unsplash.com/photo-1562157873-818bc0726f68",
        "eco_rating": "D",
    },
    {
        "name": "Plastic Water Bottle 6-Pack",
        "brand": "HydroQuick",
        "category": "Home",
        "description": "Convenient single-use plastic water bottles.",
        "price": 7.99,
        "image": "https://images.unsplash.com/photo-1626197031507-9f7696e9edd1",
        "eco_rating": "F",
    },
    {
        "name": "Synthetic Shower Gel",
        "brand": "CleanQuick",
        "category": "Beauty",
        "description": "Shower gel with synthetic fragrances and colorings.",
        "price": 4.99,
        "image": "https://images.unsplash.com/photo-1570333269894-2e0b8ec612da",
        "eco_rating": "D",
    },
    {
        "name": "Disposable Plastic Razors",
        "brand": "SharpShave",
        "category": "Beauty",
        "description": "Pack of 10 disposable plastic razors.",
        "price": 9.99,
        "image": "https://images.unsplash.com/photo-1626017650498-ee47ab5ee0a2",
        "eco_rating": "F",
    },
]


def seed_database(db: Database) -> dict:
    created = {"products": 0, "users": 0}
    if db["product"].count_documents({}) == 0:
        for p in DEMO_PRODUCTS:
            create_document(db, "product", Product(**p))
        created["products"] = len(DEMO_PRODUCTS)
    else:
        logger.info("seed_skipped", reason="products already present")

    if not db["user"].find_one({"email": SAMPLE_USER_EMAIL}):
        user = User(
            name="Test User",
            email=SAMPLE_USER_EMAIL,
            password_hash=hash_password(SAMPLE_USER_PASSWORD),
            phone="1234567890",
            address=Address(street="123 Test St", city="Test City", state="Test State", zip_code="12345", country="Test Country"),
        )
        create_document(db, "user", user)
        created["users"] = 1
    logger.info("database_seeded", **created)
    return created


def ensure_seeded(db: Database) -> dict:
    """Best-effort seeding used at startup; a database failure is logged, not raised."""
    try:
        return seed_database(db)
    except PyMongoError as e:
        logger.error("seed_failed", error=str(e))
        return {"products": 0, "users": 0}
