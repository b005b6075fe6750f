"""
Shape raw MongoDB documents into the public JSON the storefront consumes.
"""
from typing import Any, Dict, Iterable, List, Optional

SHOP_PATH = "/shop"


def to_public(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    d.pop("passwordHash", None)
    return d


def _unique(values: Iterable[Any]) -> List[Any]:
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def transform_product(
    product: Optional[Dict[str, Any]],
    include_images: bool = True,
    include_seo: bool = False,
    include_variants: bool = False,
) -> Optional[Dict[str, Any]]:
    if not product:
        return None

    transformed = {
        "id": str(product.get("_id")),
        "name": product.get("name"),
        "slug": product.get("slug"),
        "description": product.get("description"),
        "price": product.get("price"),
        "compareAtPrice": product.get("compareAtPrice"),
        "category": product.get("category"),
        "subcategory": product.get("subcategory"),
        "brand": product.get("brand"),
        "tags": product.get("tags") or [],
        "isFeatured": product.get("isFeatured"),
        "isNewArrival": product.get("isNewArrival"),
        "isBestSeller": product.get("isBestSeller"),
        "averageRating": product.get("averageRating"),
        "reviewCount": product.get("reviewCount"),
        "salesCount": product.get("salesCount"),
        "isActive": product.get("isActive"),
        "createdAt": product.get("createdAt"),
        "updatedAt": product.get("updatedAt"),
    }

    variants = product.get("variants")
    if variants:
        transformed["colors"] = _unique(v.get("color") for v in variants)
        transformed["sizes"] = _unique(v.get("size") for v in variants)
        transformed["inStock"] = any((v.get("inventory") or 0) > 0 for v in variants)
        transformed["totalInventory"] = sum(v.get("inventory") or 0 for v in variants)
        if include_variants:
            transformed["variants"] = variants
    else:
        transformed["colors"] = []
        transformed["sizes"] = []
        transformed["inStock"] = False
        transformed["totalInventory"] = 0
        if include_variants:
            transformed["variants"] = []

    images = product.get("images")
    if include_images and images is not None:
        transformed["images"] = images
        transformed["image"] = images[0].get("url") if images else None

    if include_seo and product.get("seo"):
        transformed["seo"] = product["seo"]

    return transformed


def transform_products(products: Iterable[Dict[str, Any]], **options) -> List[Dict[str, Any]]:
    if products is None:
        return []
    return [p for p in (transform_product(doc, **options) for doc in products) if p is not None]


def transform_product_for_listing(product):
    return transform_product(product, include_images=True, include_seo=False, include_variants=False)


def transform_product_for_detail(product):
    return transform_product(product, include_images=True, include_seo=True, include_variants=True)


# ---------- Breadcrumbs ----------

def _label(slug: str) -> str:
    return slug[:1].upper() + slug[1:]


def category_breadcrumbs(category: Optional[str], subcategory: Optional[str] = None) -> List[Dict[str, str]]:
    crumbs = [{"path": SHOP_PATH, "label": "Shop"}]
    if category == "all":
        crumbs.append({"path": f"{SHOP_PATH}/all", "label": "All Products"})
    elif category:
        crumbs.append({"path": f"{SHOP_PATH}/{category}", "label": _label(category)})
        if subcategory:
            crumbs.append({"path": f"{SHOP_PATH}/{category}/{subcategory}", "label": _label(subcategory)})
    return crumbs


def product_breadcrumbs(product: Optional[Dict[str, Any]]) -> List[Dict[str, str]]:
    if not product:
        return []
    crumbs = [{"path": SHOP_PATH, "label": "Shop"}]
    category = product.get("category")
    if category and category != "all":
        crumbs.append({"path": f"{SHOP_PATH}/{category}", "label": _label(category)})
    crumbs.append({"path": f"/product/{product.get('id')}", "label": product.get("name") or "Product Details"})
    return crumbs


def category_trail(categories_by_slug: Dict[str, Dict[str, Any]], slug: str) -> List[Dict[str, Any]]:
    """Walk ``parentCategory`` links up from ``slug`` and return the chain root-first."""
    trail = []
    visited = set()
    current = categories_by_slug.get(slug)
    while current is not None and current.get("slug") not in visited:
        visited.add(current.get("slug"))
        trail.append({"name": current.get("name"), "slug": current.get("slug"), "path": current.get("path")})
        parent = current.get("parentCategory")
        current = categories_by_slug.get(parent) if parent else None
    trail.reverse()
    return trail
