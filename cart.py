"""
Cart aggregate

One cart document per user holding (product_id, quantity) pairs. A product
appears at most once; adding it again bumps the quantity. Every write replaces
the items list (last write wins).
"""
from typing import Iterable, List, Optional

import structlog
from pymongo.database import Database

from database import find_by_id, now_utc, serialize_doc, to_object_id
from errors import NotFoundError
from schemas import CartItem

logger = structlog.get_logger(__name__)


def _find_cart(db: Database, user_id: str) -> Optional[dict]:
    return db["cart"].find_one({"user_id": user_id})


def _save_items(db: Database, user_id: str, items: List[dict]) -> None:
    stamp = now_utc()
    db["cart"].update_one(
        {"user_id": user_id},
        {"$set": {"items": items, "updated_at": stamp}, "$setOnInsert": {"created_at": stamp}},
        upsert=True,
    )


def merge_items(items: Iterable[CartItem]) -> List[dict]:
    """Collapse repeated products into one line, summing quantities. Keeps first-seen order."""
    merged = {}
    for item in items:
        if item.product_id in merged:
            merged[item.product_id]["quantity"] += item.quantity
        else:
            merged[item.product_id] = {"product_id": item.product_id, "quantity": item.quantity}
    return list(merged.values())


def _populate(db: Database, user_id: str, items: List[dict]) -> dict:
    ids = [oid for oid in (to_object_id(i["product_id"]) for i in items) if oid is not None]
    products = {}
    if ids:
        for doc in db["product"].find({"_id": {"$in": ids}}):
            products[str(doc["_id"])] = serialize_doc(doc)
    return {
        "user_id": user_id,
        "items": [
            {"product_id": i["product_id"], "quantity": i["quantity"], "product": products.get(i["product_id"])}
            for i in items
        ],
    }


def get_cart(db: Database, user_id: str) -> dict:
    cart = _find_cart(db, user_id)
    if not cart:
        return {"user_id": user_id, "items": []}
    return _populate(db, user_id, cart.get("items", []))


def add_item(db: Database, user_id: str, product_id: str, quantity: int = 1) -> dict:
    if not find_by_id(db, "product", product_id):
        raise NotFoundError("Product not found")
    cart = _find_cart(db, user_id)
    items = list(cart.get("items", [])) if cart else []
    for item in items:
        if item["product_id"] == product_id:
            item["quantity"] += quantity
            break
    else:
        items.append({"product_id": product_id, "quantity": quantity})
    _save_items(db, user_id, items)
    return _populate(db, user_id, items)


def set_quantity(db: Database, user_id: str, product_id: str, quantity: int) -> dict:
    cart = _find_cart(db, user_id)
    if not cart:
        raise NotFoundError("Cart not found")
    items = list(cart.get("items", []))
    for item in items:
        if item["product_id"] == product_id:
            item["quantity"] = quantity
            break
    else:
        raise NotFoundError("Item not found in cart")
    _save_items(db, user_id, items)
    return _populate(db, user_id, items)


def remove_item(db: Database, user_id: str, product_id: str) -> dict:
    cart = _find_cart(db, user_id)
    if not cart:
        raise NotFoundError("Cart not found")
    items = [i for i in cart.get("items", []) if i["product_id"] != product_id]
    _save_items(db, user_id, items)
    return _populate(db, user_id, items)


def replace_items(db: Database, user_id: str, items: Iterable[CartItem]) -> dict:
    merged = merge_items(items)
    _save_items(db, user_id, merged)
    return _populate(db, user_id, merged)


def clear_cart(db: Database, user_id: str, missing_ok: bool = False) -> None:
    """Empty the cart, keeping the document. Raises NotFoundError when there is no cart unless missing_ok."""
    result = db["cart"].update_one({"user_id": user_id}, {"$set": {"items": [], "updated_at": now_utc()}})
    if result.matched_count == 0 and not missing_ok:
        raise NotFoundError("Cart not found")
    logger.info("cart_cleared", user_id=user_id)
