"""
Database Schemas

MongoDB collection schemas and request bodies, defined with Pydantic.

Each collection model maps to a collection in the database.
Model name is converted to lowercase for the collection name:
- User -> "user" collection
- Product -> "product" collection
- Cart -> "cart" collection
- Order -> "order" collection
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Size(str, Enum):
    XS = "XS"
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"
    XXL = "XXL"


class Category(str, Enum):
    MEN = "Men"
    WOMEN = "Women"
    KIDS = "Kids"


class Brand(str, Enum):
    NIKE = "Nike"
    PDIDAS = "Pdidas"
    YUMA = "Yuma"
    GEEBOK = "Geebok"
    OVER_ARM = "Over Arm"
    NEO = "Neo"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"


class OrderStatus(str, Enum):
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


# ---------- Collections ----------

class User(BaseModel):
    """
    Users collection schema
    Collection name: "user"
    """
    username: str = Field(..., min_length=1, max_length=64)
    email: str = Field(..., description="Login email, unique")
    password_hash: str = Field(..., description="BCrypt hash of the user's password")
    refresh_token: Optional[str] = Field(None, description="The single currently valid refresh token")
    is_admin: bool = Field(False, description="Admin privileges")


class Product(BaseModel):
    """
    Products collection schema
    Collection name: "product"
    """
    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field(..., min_length=1, description="Product description")
    price: float = Field(..., ge=0, description="Price in INR")
    sizes: List[Size] = Field(default_factory=list)
    category: Category
    stock: int = Field(..., ge=0, description="Quantity in stock")
    images: List[str] = Field(..., min_length=1, description="Image URLs, first three are shown")
    brand: Brand

    model_config = ConfigDict(use_enum_values=True)


class CartItem(BaseModel):
    productId: str
    quantity: int = Field(..., ge=1)
    size: str
    price: float = Field(..., ge=0, description="Price snapshot at last add/update")
    name: str
    images: List[str] = Field(default_factory=list, max_length=3)


class Cart(BaseModel):
    """Carts collection schema (one per user)"""
    userId: str
    items: List[CartItem] = Field(default_factory=list)
    version: int = 0


class OrderItem(BaseModel):
    productId: str
    name: str
    images: List[str] = Field(default_factory=list, max_length=3)
    size: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)


class Order(BaseModel):
    """Orders collection schema"""
    userId: str
    userAddressId: str
    items: List[OrderItem]
    totalAmount: float
    transactionId: str
    paymentStatus: PaymentStatus = PaymentStatus.PENDING
    orderStatus: OrderStatus = OrderStatus.PROCESSING
    createdAt: Optional[datetime] = None

    model_config = ConfigDict(use_enum_values=True)


class Address(BaseModel):
    """Addresses collection schema (many per user)"""
    userId: str
    firstName: str = Field(..., min_length=1)
    lastName: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    zipCode: str = Field(..., min_length=1)


class WishlistEntry(BaseModel):
    productId: str
    addedAt: datetime


class Wishlist(BaseModel):
    """Wishlists collection schema (one per user)"""
    userId: str
    products: List[WishlistEntry] = Field(default_factory=list)


# ---------- Request bodies ----------

class SignupRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(BaseModel):
    refreshToken: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    newPassword: Optional[str] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = None
    sizes: Optional[List[Size]] = None
    category: Optional[Category] = None
    stock: Optional[int] = Field(None, ge=0)
    images: Optional[List[str]] = None
    brand: Optional[Brand] = None

    model_config = ConfigDict(use_enum_values=True)


class CartItemRequest(BaseModel):
    productId: str = Field(..., min_length=1)
    quantity: int
    size: str = Field(..., min_length=1)


class OrderItemInput(BaseModel):
    """Client-sent order line; presence and numeric checks happen in orders.py."""
    productId: Optional[str] = None
    name: Optional[str] = None
    images: Optional[List[str]] = None
    size: Optional[str] = None
    quantity: Optional[Union[int, float, str]] = None
    price: Optional[Union[int, float, str]] = None


class CreateOrderRequest(BaseModel):
    addressId: str = Field(..., min_length=1)
    transactionId: str = Field(..., min_length=1)
    paymentStatus: PaymentStatus = PaymentStatus.PENDING
    orderStatus: OrderStatus = OrderStatus.PROCESSING
    items: List[OrderItemInput] = Field(default_factory=list)


class CheckoutRequest(BaseModel):
    addressId: str = Field(..., min_length=1)
    transactionId: str = Field(..., min_length=1)
    paymentStatus: PaymentStatus = PaymentStatus.PENDING
    orderStatus: OrderStatus = OrderStatus.PROCESSING


class UpdateOrderRequest(BaseModel):
    orderStatus: Optional[OrderStatus] = None
    paymentStatus: Optional[PaymentStatus] = None


class AddressInput(BaseModel):
    firstName: str = Field(..., min_length=1)
    lastName: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    zipCode: str = Field(..., min_length=1)


class AddressUpdate(BaseModel):
    firstName: Optional[str] = Field(None, min_length=1)
    lastName: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = Field(None, min_length=1)
    city: Optional[str] = Field(None, min_length=1)
    state: Optional[str] = Field(None, min_length=1)
    country: Optional[str] = Field(None, min_length=1)
    zipCode: Optional[str] = Field(None, min_length=1)


class WishlistAddRequest(BaseModel):
    productId: Optional[str] = None


class PaymentOrderRequest(BaseModel):
    amount: float = Field(..., gt=0, description="Amount in rupees")


class PaymentVerifyRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
