"""
Client session state: the shopping cart and the signed-in user's
preferences, wishlist and recently viewed products.

Each store keeps its state in memory and writes the persistable part to a
key/value storage backend as a JSON string after every mutation, the way a
browser keeps it in local storage. State is rehydrated from storage when the
store is created. Writes are last-write-wins; there is no cross-process
coordination.
"""
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from constants import (
    ADMIN_ROLES,
    CART_STORAGE_KEY,
    DEFAULT_CURRENCY,
    DEFAULT_TAX_RATE,
    FREE_SHIPPING_THRESHOLD,
    MAX_CART_ITEMS,
    MAX_QUANTITY_PER_ITEM,
    MAX_RECENTLY_VIEWED,
    MAX_WISHLIST_ITEMS,
    PLACEHOLDER_IMAGE,
    ROLE_PERMISSIONS,
    STANDARD_SHIPPING_COST,
    USER_STORAGE_KEY,
)
from errors import ErrorType, handle_error
from validation import is_valid_email

logger = structlog.get_logger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def format_currency(amount: float) -> str:
    return f"${amount:,.2f}"


# ---------- Storage backends ----------

class MemoryStorage:
    def __init__(self):
        self._data: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str):
        self._data[key] = value

    def remove_item(self, key: str):
        self._data.pop(key, None)


class JsonFileStorage:
    """Storage backed by a single JSON file mapping keys to JSON strings."""

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as e:
            handle_error(e, ErrorType.UNKNOWN_ERROR, {"action": "read_storage", "path": self.path})
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]):
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str):
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str):
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


def _load(storage, key: str) -> Dict[str, Any]:
    raw = storage.get_item(key)
    if not raw:
        return {}
    try:
        state = json.loads(raw)
    except ValueError as e:
        handle_error(e, ErrorType.UNKNOWN_ERROR, {"action": "rehydrate", "key": key})
        return {}
    return state if isinstance(state, dict) else {}


# ---------- Cart ----------

class CartStore:
    def __init__(self, storage=None, key: str = CART_STORAGE_KEY):
        self.storage = storage if storage is not None else MemoryStorage()
        self.key = key
        self.is_loading = False

        state = _load(self.storage, key)
        items = state.get("items")
        self.items: List[Dict[str, Any]] = items if isinstance(items, list) else []
        self.last_updated: Optional[str] = state.get("lastUpdated")

    def _persist(self):
        self.last_updated = _now()
        self.storage.set_item(self.key, json.dumps({"items": self.items, "lastUpdated": self.last_updated}))

    def _index(self, product_id) -> int:
        for i, item in enumerate(self.items):
            if item.get("id") == product_id:
                return i
        return -1

    def add_item(self, product: Dict[str, Any]) -> bool:
        index = self._index(product.get("id"))

        if index >= 0:
            quantity = self.items[index].get("quantity", 0) + 1
            if quantity > MAX_QUANTITY_PER_ITEM:
                handle_error(
                    ValueError(f"Cannot add more than {MAX_QUANTITY_PER_ITEM} of the same item"),
                    ErrorType.VALIDATION_ERROR,
                    {"maxQuantity": MAX_QUANTITY_PER_ITEM, "productId": product.get("id")},
                )
                return False
            self.items[index] = {**self.items[index], "quantity": quantity}
        else:
            if len(self.items) >= MAX_CART_ITEMS:
                handle_error(
                    ValueError(f"Cannot add more than {MAX_CART_ITEMS} different items to cart"),
                    ErrorType.VALIDATION_ERROR,
                    {"maxItems": MAX_CART_ITEMS, "currentItems": len(self.items)},
                )
                return False
            self.items.append(
                {
                    "id": product.get("id"),
                    "name": product.get("name"),
                    "price": product.get("price"),
                    "image": product.get("image"),
                    "size": product.get("selectedSize"),
                    "color": product.get("selectedColor"),
                    "slug": product.get("slug"),
                    "quantity": 1,
                }
            )

        self._persist()
        return True

    def remove_item(self, product_id) -> bool:
        self.items = [item for item in self.items if item.get("id") != product_id]
        self._persist()
        return True

    def update_quantity(self, product_id, quantity: int) -> bool:
        if quantity < 1:
            return self.remove_item(product_id)

        if quantity > MAX_QUANTITY_PER_ITEM:
            handle_error(
                ValueError(f"Cannot add more than {MAX_QUANTITY_PER_ITEM} of the same item"),
                ErrorType.VALIDATION_ERROR,
                {"maxQuantity": MAX_QUANTITY_PER_ITEM, "productId": product_id, "requestedQuantity": quantity},
            )
            return False

        index = self._index(product_id)
        if index < 0:
            return False
        self.items[index] = {**self.items[index], "quantity": quantity}
        self._persist()
        return True

    def clear_cart(self) -> bool:
        self.items = []
        self._persist()
        return True

    def get_item(self, product_id) -> Optional[Dict[str, Any]]:
        index = self._index(product_id)
        return self.items[index] if index >= 0 else None

    def get_item_quantity(self, product_id) -> int:
        item = self.get_item(product_id)
        return item.get("quantity", 0) if item else 0

    def set_loading(self, is_loading: bool):
        self.is_loading = is_loading

    # derived values

    @property
    def total_items(self) -> int:
        return sum(item.get("quantity") or 0 for item in self.items)

    @property
    def subtotal(self) -> float:
        return sum((item.get("price") or 0) * (item.get("quantity") or 0) for item in self.items)

    @property
    def tax(self) -> float:
        return self.subtotal * DEFAULT_TAX_RATE

    @property
    def shipping(self) -> float:
        return 0.0 if self.subtotal >= FREE_SHIPPING_THRESHOLD else STANDARD_SHIPPING_COST

    @property
    def total(self) -> float:
        return self.subtotal + self.tax + self.shipping

    @property
    def formatted_subtotal(self) -> str:
        return format_currency(self.subtotal)

    @property
    def formatted_tax(self) -> str:
        return format_currency(self.tax)

    @property
    def formatted_shipping(self) -> str:
        return format_currency(self.shipping)

    @property
    def formatted_total(self) -> str:
        return format_currency(self.total)

    @property
    def has_items(self) -> bool:
        return self.total_items > 0

    @property
    def is_free_shipping_eligible(self) -> bool:
        return self.subtotal >= FREE_SHIPPING_THRESHOLD

    @property
    def free_shipping_progress(self) -> float:
        return min(self.subtotal / FREE_SHIPPING_THRESHOLD * 100, 100)


# ---------- User ----------

DEFAULT_PREFERENCES = {
    "theme": "light",
    "currency": DEFAULT_CURRENCY,
    "language": "en-US",
    "newsletters": True,
    "notifications": True,
}


def _snapshot(product: Dict[str, Any]) -> Dict[str, Any]:
    images = product.get("images") or []
    image = images[0].get("url") if images and isinstance(images[0], dict) else None
    return {
        "id": product.get("id"),
        "name": product.get("name"),
        "price": product.get("price"),
        "image": image or PLACEHOLDER_IMAGE,
        "slug": product.get("slug"),
    }


class UserStore:
    """
    Signed-in user state. Only preferences, wishlist and recently viewed
    products are persisted; the user record itself lives in memory.
    """

    def __init__(self, storage=None, key: str = USER_STORAGE_KEY):
        self.storage = storage if storage is not None else MemoryStorage()
        self.key = key
        self.user: Optional[Dict[str, Any]] = None
        self.is_authenticated = False

        state = _load(self.storage, key)
        self.preferences: Dict[str, Any] = {**DEFAULT_PREFERENCES, **(state.get("preferences") or {})}
        self.wishlist: List[Dict[str, Any]] = state.get("wishlist") or []
        self.recently_viewed: List[Dict[str, Any]] = state.get("recentlyViewed") or []

    def _persist(self):
        self.storage.set_item(
            self.key,
            json.dumps(
                {
                    "preferences": self.preferences,
                    "wishlist": self.wishlist,
                    "recentlyViewed": self.recently_viewed,
                }
            ),
        )

    # account

    def set_user(self, user: Optional[Dict[str, Any]]) -> bool:
        if user and not is_valid_email(user.get("email")):
            handle_error(
                ValueError("Invalid user email format"),
                ErrorType.VALIDATION_ERROR,
                {"action": "setUser", "email": user.get("email")},
            )
            return False
        self.user = user
        self.is_authenticated = bool(user)
        return True

    def update_user(self, updates: Dict[str, Any]) -> bool:
        if updates.get("email") and not is_valid_email(updates["email"]):
            handle_error(
                ValueError("Invalid email format"),
                ErrorType.VALIDATION_ERROR,
                {"action": "updateUser", "email": updates["email"]},
            )
            return False
        if self.user is not None:
            self.user = {**self.user, **updates}
        return True

    def logout(self) -> bool:
        self.user = None
        self.is_authenticated = False
        self.wishlist = []
        self.recently_viewed = []
        self._persist()
        logger.info("user_logged_out")
        return True

    # preferences

    def update_preferences(self, preferences: Dict[str, Any]) -> bool:
        self.preferences = {**self.preferences, **preferences}
        self._persist()
        return True

    def toggle_theme(self) -> bool:
        theme = "dark" if self.preferences.get("theme") == "light" else "light"
        return self.update_preferences({"theme": theme})

    # wishlist

    def add_to_wishlist(self, product: Dict[str, Any]) -> bool:
        if self.is_in_wishlist(product.get("id")):
            return True
        if len(self.wishlist) >= MAX_WISHLIST_ITEMS:
            handle_error(
                ValueError(f"Cannot add more than {MAX_WISHLIST_ITEMS} items to wishlist"),
                ErrorType.VALIDATION_ERROR,
                {"action": "addToWishlist", "productId": product.get("id"), "currentCount": len(self.wishlist)},
            )
            return False
        self.wishlist.append({**_snapshot(product), "addedAt": _now()})
        self._persist()
        return True

    def remove_from_wishlist(self, product_id) -> bool:
        self.wishlist = [item for item in self.wishlist if item.get("id") != product_id]
        self._persist()
        return True

    def is_in_wishlist(self, product_id) -> bool:
        return any(item.get("id") == product_id for item in self.wishlist)

    def clear_wishlist(self) -> bool:
        self.wishlist = []
        self._persist()
        return True

    # recently viewed

    def add_to_recently_viewed(self, product: Dict[str, Any]) -> bool:
        others = [item for item in self.recently_viewed if item.get("id") != product.get("id")]
        self.recently_viewed = ([{**_snapshot(product), "viewedAt": _now()}] + others)[:MAX_RECENTLY_VIEWED]
        self._persist()
        return True

    def clear_recently_viewed(self) -> bool:
        self.recently_viewed = []
        self._persist()
        return True

    # roles

    def has_role(self, role: str) -> bool:
        return bool(self.user) and self.user.get("role") == role

    def has_permission(self, permission: str) -> bool:
        if not self.user or not self.user.get("role"):
            return False
        return permission in ROLE_PERMISSIONS.get(self.user["role"], [])

    def is_admin(self) -> bool:
        return bool(self.user) and self.user.get("role") in ADMIN_ROLES

    def user_initials(self) -> str:
        if not self.user:
            return ""
        first = self.user.get("firstName") or self.user.get("given_name") or ""
        last = self.user.get("lastName") or self.user.get("family_name") or ""
        return f"{first[:1]}{last[:1]}".upper()

    def user_display_name(self) -> str:
        if not self.user:
            return "Guest"
        first = self.user.get("firstName") or self.user.get("given_name") or ""
        last = self.user.get("lastName") or self.user.get("family_name") or ""
        return self.user.get("name") or f"{first} {last}".strip() or self.user.get("email") or "User"
