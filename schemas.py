"""
Database Schemas for Urban Echo

Each Pydantic model represents a MongoDB collection (collection name is the
lowercase class name: Product -> "product"). Documents are stored with
camelCase keys; attributes are snake_case with camelCase aliases.
Derived values such as ``total_inventory`` are plain properties and are
never written to the database.
"""
import random
import string
import time
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from constants import (
    ADMIN_ROLES,
    DEFAULT_COUNTRY,
    DEFAULT_CURRENCY,
    DEFAULT_TAX_RATE,
    FREE_SHIPPING_THRESHOLD,
    MAX_CART_ITEMS,
    MAX_QUANTITY_PER_ITEM,
    MAX_WISHLIST_ITEMS,
    ORDER_NUMBER_PREFIX,
    ROLE_PERMISSIONS,
    STANDARD_SHIPPING_COST,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MongoModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Catalog ----------

ProductCategory = Literal["men", "women", "accessories", "sale"]
Subcategory = Literal[
    "shirts",
    "pants",
    "jackets",
    "hoodies",
    "shorts",
    "shoes",
    "sweaters",
    "tops",
    "dresses",
    "bags",
    "watches",
    "jewelry",
    "belts",
]
Collection = Literal["featured", "new-arrivals", "best-sellers", "trending", "limited-edition", "sale"]


class Variant(MongoModel):
    size: str = Field(..., description="e.g. S, M, 32")
    color: str
    sku: str
    inventory: int = Field(0, ge=0)
    price: Optional[float] = Field(None, ge=0, description="Overrides the product price")


class ProductImage(MongoModel):
    url: str
    alt: str = ""
    position: int = 0


class Seo(MongoModel):
    title: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)


class Product(MongoModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., pattern=r"^[\da-z]+(?:-[\da-z]+)*$", description="Unique URL identifier")
    description: str = ""
    price: float = Field(..., ge=0)
    compare_at_price: Optional[float] = Field(None, ge=0)
    category: ProductCategory
    subcategory: Optional[Subcategory] = None
    brand: Optional[str] = None
    images: List[ProductImage] = Field(default_factory=list)
    variants: List[Variant] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    collections: List[Collection] = Field(default_factory=list)
    is_featured: bool = False
    is_new_arrival: bool = False
    is_best_seller: bool = False
    is_on_sale: bool = False
    is_trending: bool = False
    is_limited_edition: bool = False
    is_active: bool = True
    average_rating: float = Field(0, ge=0, le=5)
    review_count: int = Field(0, ge=0)
    sales_count: int = Field(0, ge=0)
    seo: Optional[Seo] = None

    @field_validator("variants")
    @classmethod
    def unique_skus(cls, variants: List[Variant]) -> List[Variant]:
        skus = [v.sku for v in variants]
        if len(skus) != len(set(skus)):
            raise ValueError("variant SKUs must be unique")
        return variants

    @property
    def total_inventory(self) -> int:
        return sum(v.inventory for v in self.variants)

    @property
    def in_stock(self) -> bool:
        return self.total_inventory > 0

    @property
    def sale_percentage(self) -> int:
        if self.compare_at_price and self.compare_at_price > self.price:
            return round((self.compare_at_price - self.price) / self.compare_at_price * 100)
        return 0

    @property
    def category_path(self) -> str:
        return f"{self.category}/{self.subcategory}" if self.subcategory else self.category


class Category(MongoModel):
    """
    Hierarchical categories; ``parent_category`` holds the parent's slug.
    Collection name: "category"
    """
    name: str
    slug: str
    description: Optional[str] = Field(None, max_length=160)
    parent_category: Optional[str] = None
    level: int = Field(0, ge=0)
    path: str
    navigation_order: int = 0
    image: Optional[ProductImage] = None
    is_main_navigation: bool = False
    is_active: bool = True
    is_visible: bool = True

    @property
    def full_path(self) -> str:
        return f"{self.parent_category}/{self.slug}" if self.parent_category else self.slug


# ---------- Users ----------

Role = Literal["CUSTOMER", "ADMIN", "SUPER_ADMIN"]


class Address(MongoModel):
    type: Literal["shipping", "billing"]
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str = DEFAULT_COUNTRY
    is_default: bool = False


class WishlistItem(MongoModel):
    product_id: str
    added_at: datetime = Field(default_factory=utcnow)


class Preferences(MongoModel):
    theme: Literal["light", "dark"] = "light"
    currency: str = DEFAULT_CURRENCY
    language: str = "en"
    newsletters: bool = True
    notifications: bool = True


class User(MongoModel):
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None
    auth_provider_id: Optional[str] = None
    provider: str = "local"
    password_hash: Optional[str] = None
    role: Role = "CUSTOMER"
    is_active: bool = True
    preferences: Preferences = Field(default_factory=Preferences)
    addresses: List[Address] = Field(default_factory=list)
    wishlist: List[WishlistItem] = Field(default_factory=list)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    def add_to_wishlist(self, product_id: str) -> bool:
        """Add once per product; returns False when the wishlist is full."""
        if any(item.product_id == product_id for item in self.wishlist):
            return True
        if len(self.wishlist) >= MAX_WISHLIST_ITEMS:
            return False
        self.wishlist.append(WishlistItem(product_id=product_id))
        return True

    def remove_from_wishlist(self, product_id: str):
        self.wishlist = [item for item in self.wishlist if item.product_id != product_id]

    def has_role(self, role: str) -> bool:
        return self.role == role

    def has_permission(self, permission: str) -> bool:
        return permission in ROLE_PERMISSIONS.get(self.role, [])

    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def display_name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return self.name or full or self.email

    @property
    def initials(self) -> str:
        return f"{(self.first_name or '')[:1]}{(self.last_name or '')[:1]}".upper()


# ---------- Orders ----------

OrderStatus = Literal[
    "pending",
    "processing",
    "shipped",
    "delivered",
    "cancelled",
    "refunded",
    "on_hold",
    "backordered",
    "completed",
    "failed",
]
PaymentStatus = Literal["pending", "paid", "failed", "refunded"]


def generate_order_number() -> str:
    suffix = "".join(random.choices(string.digits + string.ascii_lowercase, k=9))
    return f"{ORDER_NUMBER_PREFIX}{int(time.time() * 1000)}-{suffix}"


class VariantSnapshot(MongoModel):
    size: Optional[str] = None
    color: Optional[str] = None
    sku: Optional[str] = None


class OrderItem(MongoModel):
    product: str = Field(..., description="Product _id as string")
    name: str = Field(..., description="Product name snapshot")
    variant: Optional[VariantSnapshot] = None
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Unit price at time of order")
    total: float = 0

    @model_validator(mode="after")
    def compute_total(self):
        self.total = round(self.price * self.quantity, 2)
        return self


class OrderAddress(MongoModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str = DEFAULT_COUNTRY
    phone_number: Optional[str] = None


class Order(MongoModel):
    order_number: str = Field(default_factory=generate_order_number)
    user: str
    items: List[OrderItem] = Field(..., min_length=1)
    shipping_address: Optional[OrderAddress] = None
    billing_address: Optional[OrderAddress] = None
    subtotal: float = 0
    shipping: float = 0
    tax: float = 0
    total: float = 0
    status: OrderStatus = "pending"
    payment_status: PaymentStatus = "pending"
    tracking_number: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def compute_totals(self):
        self.subtotal = round(sum(item.total for item in self.items), 2)
        self.shipping = 0.0 if self.subtotal >= FREE_SHIPPING_THRESHOLD else STANDARD_SHIPPING_COST
        self.tax = round(self.subtotal * DEFAULT_TAX_RATE, 2)
        self.total = round(self.subtotal + self.shipping + self.tax, 2)
        return self


# ---------- Request payloads ----------

class UserCreate(MongoModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class WishlistAdd(MongoModel):
    product_id: str = Field(..., min_length=1)


class OrderItemIn(MongoModel):
    product_id: str = Field(..., description="Product _id or slug")
    sku: Optional[str] = None
    quantity: int = Field(1, ge=1, le=MAX_QUANTITY_PER_ITEM)


class OrderCreate(MongoModel):
    items: List[OrderItemIn] = Field(..., min_length=1, max_length=MAX_CART_ITEMS)
    shipping_address: Optional[OrderAddress] = None
    billing_address: Optional[OrderAddress] = None
    notes: Optional[str] = Field(None, max_length=500)


class NewsletterSubscribe(BaseModel):
    email: Optional[str] = None


class ErrorReport(BaseModel):
    type: Optional[str] = None
    message: Optional[str] = None
    stack: Optional[str] = None
    context: dict = Field(default_factory=dict)
    url: Optional[str] = None
    timestamp: Optional[str] = None
    user_agent: Optional[str] = Field(None, alias="userAgent")

    model_config = ConfigDict(populate_by_name=True)


class SeedRequest(BaseModel):
    force: bool = False
