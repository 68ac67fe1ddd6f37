"""
Checkout orchestration and payment confirmation

``begin_checkout`` turns a Pending order into a payment record plus a client
redirect (COD/UPI) or a hosted checkout URL (card). ``confirm_payment``
reconciles a payment after the client comes back from that step.

No step is transactional: the payment insert, the order update and the cart
clear are independent writes, and a failure part-way is not rolled back.
"""
from typing import Optional
from urllib.parse import urlencode

import structlog
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from cart import clear_cart
from config import Settings
from database import create_document, find_by_id, now_utc, serialize_doc
from errors import BadRequestError, ConflictError, NotFoundError, PaymentNotCompletedError
from orders import load_order
from payment_provider import PaymentProvider, to_minor_units
from schemas import ORDER_STATUS_FLOW, Payment

logger = structlog.get_logger(__name__)

SUCCESS_PATH = "/payment-success"
CANCEL_PATH = "/cart"


def success_redirect(order_id: str, method: str) -> str:
    return f"{SUCCESS_PATH}?{urlencode({'order_id': order_id, 'method': method})}"


def can_advance(current: str, target: str) -> bool:
    if current not in ORDER_STATUS_FLOW or target not in ORDER_STATUS_FLOW:
        return False
    return ORDER_STATUS_FLOW.index(target) > ORDER_STATUS_FLOW.index(current)


class CheckoutService:
    def __init__(self, db: Database, provider: PaymentProvider, settings: Settings):
        self.db = db
        self.provider = provider
        self.settings = settings

    # ---------------- helpers ----------------

    def _insert_payment(self, payment: Payment) -> str:
        try:
            return create_document(self.db, "payment", payment)
        except DuplicateKeyError:
            raise ConflictError("A payment for this order is already in progress")

    def _advance_order(self, order_id, status: Optional[str] = None, payment_method: Optional[str] = None) -> None:
        order = find_by_id(self.db, "order", order_id)
        if not order:
            logger.warning("payment_order_missing", order_id=str(order_id))
            return
        update = {"updated_at": now_utc()}
        if status and can_advance(order.get("status", "Pending"), status):
            update["status"] = status
        if payment_method:
            update["payment_method"] = payment_method
        self.db["order"].update_one({"_id": order["_id"]}, {"$set": update})

    def _complete_payment(self, payment: dict) -> bool:
        """Mark a payment completed. Side effects run only on the call that makes the transition."""
        result = self.db["payment"].update_one(
            {"_id": payment["_id"], "status": {"$ne": "completed"}},
            {"$set": {"status": "completed", "updated_at": now_utc()}},
        )
        if result.modified_count == 0:
            return False
        if payment.get("status") == "failed":
            logger.warning("superseded_payment_settled", payment_id=str(payment["_id"]), order_id=payment["order_id"])
        # A settled payment is the order's only live one.
        others = self.db["payment"].update_many(
            {"order_id": payment["order_id"], "status": "pending", "_id": {"$ne": payment["_id"]}},
            {"$set": {"status": "failed", "updated_at": now_utc()}},
        )
        if others.modified_count:
            logger.info("pending_payments_superseded", order_id=payment["order_id"], count=others.modified_count)
        self._advance_order(payment["order_id"], "Processing")
        clear_cart(self.db, payment["user_id"], missing_ok=True)
        return True

    def _supersede_pending(self, order_id: str) -> None:
        result = self.db["payment"].update_many(
            {"order_id": order_id, "status": "pending"},
            {"$set": {"status": "failed", "updated_at": now_utc()}},
        )
        if result.modified_count:
            logger.info("pending_payments_superseded", order_id=order_id, count=result.modified_count)

    # ---------------- checkout ----------------

    def begin_checkout(self, user_id: str, order_id: str, payment_method: str = "card", return_origin: Optional[str] = None) -> dict:
        order = load_order(self.db, user_id, order_id)
        order_id = str(order["_id"])
        if order.get("status") != "Pending":
            raise ConflictError("Order has already been checked out")

        amount = float(order["total"])
        log = logger.bind(order_id=order_id, user_id=user_id, payment_method=payment_method)
        log.info("checkout_started", amount=amount)

        if payment_method == "cod":
            # Settled in cash on delivery, so the payment stays pending.
            self._supersede_pending(order_id)
            self._insert_payment(Payment(user_id=user_id, order_id=order_id, amount=amount, currency=self.settings.currency, payment_method="cod"))
            self._advance_order(order["_id"], "Processing", payment_method="cod")
            clear_cart(self.db, user_id, missing_ok=True)
            return {"success": True, "redirect_url": success_redirect(order_id, "cod")}

        if payment_method == "upi":
            # No UPI gateway is integrated; the payment is treated as settled immediately.
            log.warning("upi_payment_simulated")
            self._supersede_pending(order_id)
            self._insert_payment(Payment(user_id=user_id, order_id=order_id, amount=amount, currency=self.settings.currency, payment_method="upi", status="completed"))
            self._advance_order(order["_id"], "Processing", payment_method="upi")
            clear_cart(self.db, user_id, missing_ok=True)
            return {"success": True, "redirect_url": success_redirect(order_id, "upi")}

        origin = (return_origin or self.settings.client_origin).rstrip("/")
        session = self.provider.create_session(
            order_id=order_id,
            amount_cents=to_minor_units(amount),
            currency=self.settings.currency,
            success_url=f"{origin}{SUCCESS_PATH}?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{origin}{CANCEL_PATH}",
        )
        # Older attempts stay live if the provider call above fails.
        self._supersede_pending(order_id)

        if session.mock:
            log.warning("mock_card_payment_completed", session_id=session.id)
            self._insert_payment(
                Payment(
                    user_id=user_id,
                    order_id=order_id,
                    amount=amount,
                    currency=self.settings.currency,
                    payment_method="card",
                    provider_session_id=session.id,
                    status="completed",
                )
            )
            self._advance_order(order["_id"], "Processing", payment_method="card")
            clear_cart(self.db, user_id, missing_ok=True)
            return {
                "success": True,
                "mock": True,
                "url": session.url,
                "session_id": session.id,
                "redirect_url": success_redirect(order_id, "card"),
            }

        self._insert_payment(
            Payment(
                user_id=user_id,
                order_id=order_id,
                amount=amount,
                currency=self.settings.currency,
                payment_method="card",
                provider_session_id=session.id,
            )
        )
        self._advance_order(order["_id"], payment_method="card")
        log.info("card_session_created", session_id=session.id)
        return {"url": session.url, "session_id": session.id}

    # ---------------- confirmation ----------------

    def confirm_payment(
        self,
        user_id: str,
        session_id: Optional[str] = None,
        order_id: Optional[str] = None,
        payment_method: Optional[str] = None,
    ) -> dict:
        # Card payments are only ever settled on the provider's word.
        if order_id and payment_method and payment_method != "card":
            payment = self.db["payment"].find_one(
                {"order_id": order_id, "payment_method": payment_method, "user_id": user_id, "status": {"$ne": "failed"}}
            )
            if payment:
                settled = self._complete_payment(payment)
                logger.info("payment_confirmed", order_id=order_id, payment_method=payment_method, settled=settled)
                return {"success": True}
            if not session_id:
                raise NotFoundError("Payment not found")

        if order_id and payment_method == "card" and not session_id:
            raise BadRequestError("Card payments require a session ID")
        if not session_id:
            raise BadRequestError("No session ID or order information provided")

        if not self.provider.is_paid(session_id):
            logger.info("payment_not_completed", session_id=session_id)
            raise PaymentNotCompletedError()

        payment = self.db["payment"].find_one({"provider_session_id": session_id, "user_id": user_id})
        if not payment:
            raise NotFoundError("Payment not found")
        settled = self._complete_payment(payment)
        logger.info("payment_confirmed", session_id=session_id, order_id=payment["order_id"], settled=settled)
        return {"success": True}

    def payments_for_order(self, order_id: str):
        return [serialize_doc(p) for p in self.db["payment"].find({"order_id": order_id})]
