"""
Database Schemas for the EcoCart storefront

Each Pydantic model corresponds to one MongoDB collection.
Collection name is the lowercase of the class name (User -> "user").
References between collections are stored as string ids.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

EcoRating = Literal["A", "B", "C", "D", "F"]
OrderStatus = Literal["Pending", "Processing", "Shipped", "Delivered", "Cancelled"]
PaymentMethod = Literal["card", "upi", "cod"]
PaymentStatus = Literal["pending", "completed", "failed"]

# Forward-only order lifecycle; Cancelled is terminal and sits outside it.
ORDER_STATUS_FLOW = ["Pending", "Processing", "Shipped", "Delivered"]
ECO_FRIENDLY_RATINGS = ["A", "B"]


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr
    password_hash: str = Field(..., description="BCrypt hash of the password")
    phone: Optional[str] = None
    address: Optional[Address] = None


class Product(BaseModel):
    name: str
    brand: str
    category: str
    description: str
    price: float = Field(..., gt=0, description="Unit price")
    image: str
    eco_rating: EcoRating = Field(..., description="Sustainability grade, A is best")
    featured: bool = False
    in_stock: bool = Field(True, description="Informational only, not enforced at checkout")


class CartItem(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class Cart(BaseModel):
    user_id: str
    items: List[CartItem] = []


class OrderItem(BaseModel):
    product_id: str
    name: str = Field(..., description="Product name at time of purchase")
    price: float = Field(..., gt=0, description="Unit price at time of purchase")
    quantity: int = Field(..., ge=1)


class Order(BaseModel):
    user_id: str
    items: List[OrderItem]
    total: float = Field(..., ge=0)
    status: OrderStatus = "Pending"
    payment_method: Optional[PaymentMethod] = None
    shipping_address: Optional[Address] = None


class Payment(BaseModel):
    user_id: str
    order_id: str
    amount: float = Field(..., ge=0)
    currency: str = "usd"
    payment_method: PaymentMethod
    provider_session_id: Optional[str] = Field(None, description="Checkout session id, card payments only")
    status: PaymentStatus = "pending"
