"""
MongoDB query construction for product listing and search.

Filters are plain dicts, sorts are pymongo ``[(field, direction)]`` lists and
pagination is offset based (``skip``/``limit``).
"""
import math
import re
from typing import Any, Dict, List, Optional, Tuple

from constants import DEFAULT_LIMIT, DEFAULT_PAGE, FIELD_SELECTIONS, MAX_PRODUCTS_PER_REQUEST

SortSpec = List[Tuple[str, int]]

SORT_OPTIONS_MAP: Dict[str, SortSpec] = {
    "price-low": [("price", 1)],
    "price-high": [("price", -1)],
    "rating": [("averageRating", -1), ("reviewCount", -1)],
    "newest": [("createdAt", -1)],
    "oldest": [("createdAt", 1)],
    "popularity": [("salesCount", -1), ("averageRating", -1)],
    "name-asc": [("name", 1)],
    "name-desc": [("name", -1)],
}

# no text index backs "relevance", so it orders featured products first
RELEVANCE_SORT: SortSpec = [("isFeatured", -1), ("createdAt", -1)]


def build_product_query(
    query: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    is_active: bool = True,
    is_featured: Optional[bool] = None,
    is_new_arrival: Optional[bool] = None,
    is_best_seller: Optional[bool] = None,
) -> Dict[str, Any]:
    mongo_query: Dict[str, Any] = {"isActive": is_active}

    if query and query.strip():
        pattern = re.escape(query.strip())
        mongo_query["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
            {"tags": {"$regex": pattern, "$options": "i"}},
            {"brand": {"$regex": pattern, "$options": "i"}},
        ]

    if category:
        mongo_query["category"] = category

    if min_price is not None or max_price is not None:
        price_filter = {}
        if min_price is not None:
            price_filter["$gte"] = min_price
        if max_price is not None:
            price_filter["$lte"] = max_price
        mongo_query["price"] = price_filter

    if is_featured is not None:
        mongo_query["isFeatured"] = is_featured
    if is_new_arrival is not None:
        mongo_query["isNewArrival"] = is_new_arrival
    if is_best_seller is not None:
        mongo_query["isBestSeller"] = is_best_seller

    return mongo_query


def build_sort_options(sort_by: Optional[str] = "newest") -> SortSpec:
    """Map a sort key to a pymongo sort list; unknown keys sort newest first."""
    if sort_by in SORT_OPTIONS_MAP:
        return list(SORT_OPTIONS_MAP[sort_by])
    if sort_by == "relevance":
        return list(RELEVANCE_SORT)
    return list(SORT_OPTIONS_MAP["newest"])


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def build_pagination(
    page: Any = DEFAULT_PAGE,
    limit: Any = DEFAULT_LIMIT,
    max_limit: int = MAX_PRODUCTS_PER_REQUEST,
) -> Dict[str, int]:
    sanitized_page = max(1, _to_int(page, DEFAULT_PAGE))
    sanitized_limit = min(max_limit, max(1, _to_int(limit, DEFAULT_LIMIT)))
    return {
        "page": sanitized_page,
        "limit": sanitized_limit,
        "skip": (sanitized_page - 1) * sanitized_limit,
    }


def build_pagination_meta(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasMore": page < total_pages,
        "hasPrevPage": page > 1,
        "hasNextPage": page < total_pages,
    }


def build_field_selection(kind: str = "listing") -> Optional[Dict[str, int]]:
    kind = (kind or "listing").lower()
    if kind not in FIELD_SELECTIONS:
        kind = "listing"
    selection = FIELD_SELECTIONS[kind]
    return dict(selection) if selection is not None else None
