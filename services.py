"""
Catalog and order operations shared by the API routes.
"""
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from pymongo.database import Database

from constants import DEFAULT_RELATED_LIMIT
from errors import NotFound, ValidationFailed
from query_builders import build_field_selection
from schemas import Order, OrderCreate, OrderItem, VariantSnapshot
from transformers import category_trail, to_public, transform_product_for_listing
from validation import is_valid_object_id

RATING_SORT = [("averageRating", -1), ("reviewCount", -1)]


def find_product(db: Database, identifier: str, active_only: bool = True) -> Optional[Dict[str, Any]]:
    """Look a product up by ObjectId, falling back to its slug."""
    query: Dict[str, Any] = {"isActive": True} if active_only else {}
    if is_valid_object_id(identifier):
        doc = db["product"].find_one({**query, "_id": ObjectId(identifier)})
        if doc:
            return doc
    return db["product"].find_one({**query, "slug": identifier})


def get_related_products(
    db: Database,
    product_id: str,
    limit: int = DEFAULT_RELATED_LIMIT,
    category: Optional[str] = None,
    exclude_out_of_stock: bool = False,
) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    source = find_product(db, product_id, active_only=False)
    if not source:
        raise NotFound("Product", product_id)

    query: Dict[str, Any] = {
        "isActive": True,
        "category": category or source.get("category"),
        "_id": {"$ne": source["_id"]},
    }
    if exclude_out_of_stock:
        query["variants.inventory"] = {"$gt": 0}

    cursor = db["product"].find(query, build_field_selection("listing")).sort(RATING_SORT).limit(limit)
    return source, [transform_product_for_listing(doc) for doc in cursor]


def build_order(db: Database, user_id: str, payload: OrderCreate) -> Order:
    items = []
    for line in payload.items:
        product = find_product(db, line.product_id)
        if not product:
            raise NotFound("Product", line.product_id)

        variant = None
        if line.sku:
            variant = next((v for v in product.get("variants") or [] if v.get("sku") == line.sku), None)
            if variant is None:
                raise ValidationFailed(
                    f"Unknown SKU {line.sku} for product {product.get('slug')}",
                    details={"productId": line.product_id, "sku": line.sku},
                )
            if (variant.get("inventory") or 0) < line.quantity:
                raise ValidationFailed(
                    f"Insufficient inventory for SKU {line.sku}",
                    details={"sku": line.sku, "available": variant.get("inventory") or 0},
                )

        price = variant.get("price") if variant and variant.get("price") is not None else product["price"]
        items.append(
            OrderItem(
                product=str(product["_id"]),
                name=product["name"],
                variant=VariantSnapshot(**{k: variant.get(k) for k in ("size", "color", "sku")}) if variant else None,
                quantity=line.quantity,
                price=price,
            )
        )

    return Order(
        user=user_id,
        items=items,
        shipping_address=payload.shipping_address,
        billing_address=payload.billing_address,
        notes=payload.notes,
    )


# ---------- Categories ----------

def _product_filter(category: Dict[str, Any]) -> Dict[str, Any]:
    if category.get("parentCategory"):
        return {"isActive": True, "category": category["parentCategory"], "subcategory": category["slug"]}
    return {"isActive": True, "category": category["slug"]}


def list_categories(
    db: Database,
    include_product_count: bool = False,
    include_sub_categories: bool = False,
    status: str = "active",
) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {}
    if status == "active":
        query.update({"isActive": True, "isVisible": True})
    if not include_sub_categories:
        query["level"] = 0

    categories = list(db["category"].find(query).sort([("navigationOrder", 1), ("name", 1)]))
    if include_product_count:
        for category in categories:
            category["productCount"] = db["product"].count_documents(_product_filter(category))
    return [to_public(c) for c in categories]


def category_with_trail(db: Database, slug: str) -> Dict[str, Any]:
    category = db["category"].find_one({"slug": slug, "isActive": True})
    if not category:
        raise NotFound("Category", slug)

    by_slug = {c["slug"]: c for c in db["category"].find({"isActive": True})}
    children = db["category"].find({"parentCategory": slug, "isActive": True}).sort([("navigationOrder", 1)])

    data = to_public(category)
    data["breadcrumbs"] = category_trail(by_slug, slug)
    data["subCategories"] = [to_public(c) for c in children]
    data["productCount"] = db["product"].count_documents(_product_filter(category))
    return data
