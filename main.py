import os
from contextlib import asynccontextmanager
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

import cart as cart_ops
import catalog
import orders as order_ops
from auth import create_token, get_current_user, get_settings, hash_password, public_user, verify_password
from checkout import CheckoutService
from config import Settings, configure_logging
from database import connect, create_document, ensure_indexes, get_db, now_utc, ping, serialize_doc, to_object_id
from errors import StoreError
from payment_provider import PaymentProvider, build_provider
from schemas import Address, CartItem, PaymentMethod, User as UserSchema
from seed import ensure_seeded, seed_database

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api")


def get_checkout(request: Request, db: Database = Depends(get_db)) -> CheckoutService:
    return CheckoutService(db, request.app.state.provider, request.app.state.settings)


# ----------------------- Models -----------------------
class RegisterBody(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginBody(BaseModel):
    email: EmailStr
    password: str


class ProfileBody(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None


class AddToCartBody(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class QuantityBody(BaseModel):
    quantity: int = Field(..., ge=1)


class ReplaceCartBody(BaseModel):
    items: List[CartItem]


class CreateOrderBody(BaseModel):
    items: Optional[List[CartItem]] = Field(None, description="Defaults to the current cart")
    total: Optional[float] = Field(None, ge=0, description="Checked against the recomputed total")
    shipping_address: Optional[Address] = None


class CheckoutBody(BaseModel):
    order_id: str
    payment_method: PaymentMethod = "card"


class ConfirmPaymentBody(BaseModel):
    session_id: Optional[str] = None
    order_id: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None


# ----------------------- Users -----------------------
@router.post("/users/register", status_code=201)
def register(body: RegisterBody, db: Database = Depends(get_db)):
    if db["user"].find_one({"email": body.email}):
        raise HTTPException(status_code=400, detail="User already exists with this email")
    user = UserSchema(name=body.name, email=body.email, password_hash=hash_password(body.password))
    try:
        create_document(db, "user", user)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="User already exists with this email")
    logger.info("user_registered", email=body.email)
    return {"message": "User registered successfully", "success": True}


@router.post("/users/login")
def login(body: LoginBody, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    user = db["user"].find_one({"email": body.email})
    if not user or not verify_password(body.password, user.get("password_hash")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    suser = serialize_doc(user)
    return {"token": create_token(suser["id"], settings), "user": public_user(suser)}


@router.get("/users/verify")
def verify(user=Depends(get_current_user)):
    return {"user": public_user(user)}


@router.get("/users/profile")
def get_profile(user=Depends(get_current_user)):
    return {**public_user(user), "address": user.get("address")}


@router.put("/users/profile")
def update_profile(body: ProfileBody, user=Depends(get_current_user), db: Database = Depends(get_db)):
    update = body.model_dump(exclude_none=True)
    update["updated_at"] = now_utc()
    db["user"].update_one({"_id": to_object_id(user["id"])}, {"$set": update})
    return {"message": "Profile updated successfully"}


@router.put("/users/address")
def update_address(body: Address, user=Depends(get_current_user), db: Database = Depends(get_db)):
    db["user"].update_one({"_id": to_object_id(user["id"])}, {"$set": {"address": body.model_dump(), "updated_at": now_utc()}})
    return {"message": "Address updated successfully"}


# ----------------------- Products -----------------------
@router.get("/products")
def list_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    rating: Optional[str] = None,
    brand: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    db: Database = Depends(get_db),
):
    return catalog.list_products(
        db, search=search, category=category, rating=rating, brand=brand, min_price=min_price, max_price=max_price
    )


@router.get("/products/featured")
def featured_products(db: Database = Depends(get_db)):
    return catalog.featured_products(db)


@router.get("/products/eco-alternatives")
def eco_alternatives(db: Database = Depends(get_db)):
    return catalog.eco_picks(db)


@router.get("/products/alternatives/{product_id}")
def product_alternatives(product_id: str, db: Database = Depends(get_db)):
    return catalog.alternatives_for(db, product_id)


@router.get("/products/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    return serialize_doc(catalog.get_product(db, product_id))


# ----------------------- Cart -----------------------
@router.get("/cart")
def get_cart(user=Depends(get_current_user), db: Database = Depends(get_db)):
    return cart_ops.get_cart(db, user["id"])


@router.post("/cart/add")
def add_to_cart(body: AddToCartBody, user=Depends(get_current_user), db: Database = Depends(get_db)):
    return cart_ops.add_item(db, user["id"], body.product_id, body.quantity)


@router.patch("/cart/update/{product_id}")
def update_cart_item(product_id: str, body: QuantityBody, user=Depends(get_current_user), db: Database = Depends(get_db)):
    return cart_ops.set_quantity(db, user["id"], product_id, body.quantity)


@router.delete("/cart/remove/{product_id}")
def remove_from_cart(product_id: str, user=Depends(get_current_user), db: Database = Depends(get_db)):
    return cart_ops.remove_item(db, user["id"], product_id)


@router.delete("/cart/clear")
def clear_cart(user=Depends(get_current_user), db: Database = Depends(get_db)):
    cart_ops.clear_cart(db, user["id"])
    return {"message": "Cart cleared"}


@router.put("/cart")
def replace_cart(body: ReplaceCartBody, user=Depends(get_current_user), db: Database = Depends(get_db)):
    return cart_ops.replace_items(db, user["id"], body.items)


# ----------------------- Orders -----------------------
@router.post("/orders", status_code=201)
def create_order(body: CreateOrderBody, user=Depends(get_current_user), db: Database = Depends(get_db)):
    return order_ops.create_order(db, user, items=body.items, total=body.total, shipping_address=body.shipping_address)


@router.get("/orders")
def list_orders(user=Depends(get_current_user), db: Database = Depends(get_db)):
    return order_ops.list_orders(db, user["id"])


@router.get("/orders/{order_id}")
def get_order(order_id: str, user=Depends(get_current_user), checkout: CheckoutService = Depends(get_checkout)):
    order = serialize_doc(order_ops.load_order(checkout.db, user["id"], order_id))
    order["payments"] = checkout.payments_for_order(order["id"])
    return order


# ----------------------- Payments -----------------------
@router.post("/payments/create-checkout-session")
def create_checkout_session(
    body: CheckoutBody, request: Request, user=Depends(get_current_user), checkout: CheckoutService = Depends(get_checkout)
):
    return checkout.begin_checkout(user["id"], body.order_id, body.payment_method, request.headers.get("origin"))


@router.post("/payments/confirm-payment")
def confirm_payment(body: ConfirmPaymentBody, user=Depends(get_current_user), checkout: CheckoutService = Depends(get_checkout)):
    return checkout.confirm_payment(
        user["id"], session_id=body.session_id, order_id=body.order_id, payment_method=body.payment_method
    )


# ----------------------- Seed Demo Data -----------------------
@router.post("/seed")
def seed(db: Database = Depends(get_db)):
    return {"seeded": seed_database(db)}


# ----------------------- App -----------------------
def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None, provider: Optional[PaymentProvider] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            ensure_indexes(app.state.db)
        except PyMongoError as e:
            logger.error("index_creation_failed", error=str(e))
        if settings.seed_on_startup:
            ensure_seeded(app.state.db)
        yield

    app = FastAPI(title="EcoCart API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db if db is not None else connect(settings)
    app.state.provider = provider or build_provider(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreError)
    def store_error_handler(request: Request, exc: StoreError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(PyMongoError)
    def database_error_handler(request: Request, exc: PyMongoError):
        logger.error("database_error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=503, content={"detail": "Database unavailable. Please try again later."})

    @app.get("/")
    def root():
        return {"message": "EcoCart API running"}

    @app.get("/test")
    def test_database():
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
            "database_name": settings.database_name,
            "payments": "✅ Live" if settings.payments_live else "⚠️  Mock provider",
            "collections": [],
        }
        if ping(app.state.db):
            response["database"] = "✅ Connected & Working"
            response["collections"] = app.state.db.list_collection_names()[:10]
        return response

    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    _settings = Settings.from_env()
    configure_logging(_settings.log_level)
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(create_app(_settings), host="0.0.0.0", port=port)
