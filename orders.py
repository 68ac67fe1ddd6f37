"""
Order creation and lookup

Orders snapshot each line item's name and price from the catalog when they are
created, so later catalog edits do not rewrite history. The total is always
recomputed here; a client-supplied total is only checked against it.
"""
from typing import List, Optional

import structlog
from pymongo import DESCENDING
from pymongo.database import Database

from cart import merge_items
from catalog import get_product
from database import create_document, find_by_id, get_documents, serialize_doc
from errors import BadRequestError, NotFoundError
from schemas import Address, CartItem, Order, OrderItem

logger = structlog.get_logger(__name__)

TOTAL_TOLERANCE = 0.01


def calc_total(items: List[OrderItem]) -> float:
    return round(sum(i.price * i.quantity for i in items), 2)


def snapshot_items(db: Database, items: List[CartItem]) -> List[OrderItem]:
    snapshot = []
    for item in merge_items(items):
        product = get_product(db, item["product_id"])
        snapshot.append(
            OrderItem(
                product_id=item["product_id"],
                name=product["name"],
                price=float(product["price"]),
                quantity=item["quantity"],
            )
        )
    return snapshot


def create_order(
    db: Database,
    user: dict,
    items: Optional[List[CartItem]] = None,
    total: Optional[float] = None,
    shipping_address: Optional[Address] = None,
) -> dict:
    if items is None:
        cart = db["cart"].find_one({"user_id": user["id"]}) or {}
        items = [CartItem(**i) for i in cart.get("items", [])]
    if not items:
        raise BadRequestError("Order must contain at least one item")

    line_items = snapshot_items(db, items)
    computed = calc_total(line_items)
    if total is not None and abs(total - computed) > TOTAL_TOLERANCE:
        logger.warning("order_total_mismatch", user_id=user["id"], submitted=total, computed=computed)
        raise BadRequestError("Order total does not match line items")

    if shipping_address is None and user.get("address"):
        shipping_address = Address(**user["address"])

    order = Order(user_id=user["id"], items=line_items, total=computed, shipping_address=shipping_address)
    order_id = create_document(db, "order", order)
    logger.info("order_created", order_id=order_id, user_id=user["id"], total=computed)
    return serialize_doc(find_by_id(db, "order", order_id))


def list_orders(db: Database, user_id: str) -> List[dict]:
    docs = get_documents(db, "order", {"user_id": user_id}, sort=[("created_at", DESCENDING)])
    return [serialize_doc(d) for d in docs]


def load_order(db: Database, user_id: str, order_id: str) -> dict:
    """Fetch an order owned by user_id. Orders of other users are reported as missing."""
    order = find_by_id(db, "order", order_id)
    if not order or order.get("user_id") != user_id:
        raise NotFoundError("Order not found")
    return order
