"""Read-only product queries."""
import re
from typing import List, Optional

from pymongo import DESCENDING
from pymongo.database import Database

from database import find_by_id, get_documents, serialize_doc
from errors import NotFoundError
from schemas import ECO_FRIENDLY_RATINGS

FEATURED_LIMIT = 4
ECO_PICKS_LIMIT = 4
ALTERNATIVES_LIMIT = 6


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def build_product_filter(
    search: Optional[str] = None,
    category: Optional[str] = None,
    rating: Optional[str] = None,
    brand: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
) -> dict:
    filt = {}
    if search:
        pattern = re.escape(search)
        filt["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]
    if category:
        filt["category"] = {"$regex": f"^{re.escape(category)}$", "$options": "i"}
    ratings = [r.upper() for r in _split_csv(rating)]
    if ratings:
        filt["eco_rating"] = {"$in": ratings}
    brands = _split_csv(brand)
    if brands:
        filt["brand"] = {"$in": brands}
    if min_price is not None or max_price is not None:
        price = {}
        if min_price is not None:
            price["$gte"] = min_price
        if max_price is not None:
            price["$lte"] = max_price
        filt["price"] = price
    return filt


def list_products(db: Database, **filters) -> List[dict]:
    docs = get_documents(db, "product", build_product_filter(**filters), sort=[("created_at", DESCENDING)])
    return [serialize_doc(d) for d in docs]


def featured_products(db: Database) -> List[dict]:
    docs = get_documents(db, "product", {"featured": True}, limit=FEATURED_LIMIT)
    return [serialize_doc(d) for d in docs]


def eco_picks(db: Database) -> List[dict]:
    docs = get_documents(db, "product", {"eco_rating": {"$in": ECO_FRIENDLY_RATINGS}}, limit=ECO_PICKS_LIMIT)
    return [serialize_doc(d) for d in docs]


def get_product(db: Database, product_id: str) -> dict:
    doc = find_by_id(db, "product", product_id)
    if not doc:
        raise NotFoundError("Product not found")
    return doc


def alternatives_for(db: Database, product_id: str) -> List[dict]:
    """Better-rated products from the same category, excluding the product itself."""
    product = get_product(db, product_id)
    filt = {
        "category": product["category"],
        "eco_rating": {"$in": ECO_FRIENDLY_RATINGS},
        "_id": {"$ne": product["_id"]},
    }
    docs = get_documents(db, "product", filt, limit=ALTERNATIVES_LIMIT)
    return [serialize_doc(d) for d in docs]
