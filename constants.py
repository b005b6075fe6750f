"""
Storefront constants: API limits, sort tables, field selections, messages,
CMS fallback content and cart/user limits.
"""

# ---------- API limits ----------

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20

MAX_PRODUCTS_PER_REQUEST = 100
MAX_PRODUCTS_LISTING = 50
MAX_FEATURED_PRODUCTS = 50
MAX_NEW_ARRIVALS = 100
MAX_BEST_SELLERS = 50
MAX_RELATED_PRODUCTS = 20
MAX_SEARCH_RESULTS = 100
MAX_SEARCH_QUERY_LENGTH = 200

DEFAULT_PRODUCTS_LIMIT = 8
DEFAULT_SEARCH_LIMIT = 12
DEFAULT_NEW_ARRIVALS_LIMIT = 8
DEFAULT_FEATURED_LIMIT = 4
DEFAULT_BEST_SELLERS_LIMIT = 8
DEFAULT_RELATED_LIMIT = 4

OBJECT_ID_PATTERN = r"^[0-9a-fA-F]{24}$"
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

# ---------- Sorting ----------

SORT_OPTIONS = {
    "products": [
        "relevance",
        "price-low",
        "price-high",
        "rating",
        "newest",
        "oldest",
        "popularity",
        "name-asc",
        "name-desc",
    ],
    "search": ["relevance", "price-low", "price-high", "rating", "newest", "oldest"],
    "featured": ["rating", "newest", "popularity", "price-low", "price-high"],
    "new_arrivals": ["newest", "oldest", "price-low", "price-high", "rating"],
    "best_sellers": ["popularity", "rating", "newest", "price-low", "price-high"],
}

# ---------- Projections ----------

FIELD_SELECTIONS = {
    "minimal": {"name": 1, "slug": 1, "price": 1, "images": 1},
    "listing": {
        "name": 1,
        "slug": 1,
        "price": 1,
        "compareAtPrice": 1,
        "category": 1,
        "subcategory": 1,
        "brand": 1,
        "images": 1,
        "variants": 1,
        "isFeatured": 1,
        "isNewArrival": 1,
        "isBestSeller": 1,
        "isOnSale": 1,
        "averageRating": 1,
        "reviewCount": 1,
        "salesCount": 1,
        "tags": 1,
        "isActive": 1,
        "description": 1,
        "createdAt": 1,
        "updatedAt": 1,
    },
    # None means "all fields"
    "detail": None,
}

# ---------- Messages ----------

VALIDATION_FAILED = "Validation failed"
INVALID_EMAIL = "Please enter a valid email address"
NEWSLETTER_SUBSCRIBED = "Successfully subscribed to newsletter!"
INVALID_PRICE_RANGE = "Minimum price cannot be greater than maximum price"
NEGATIVE_PRICE = "Price bounds cannot be negative"


def limit_exceeded(max_limit: int) -> str:
    return f"Limit cannot exceed {max_limit} items per request"


def invalid_format(field: str) -> str:
    return f"{field} has invalid format"


def invalid_sort(allowed) -> str:
    return "Sort must be one of: " + ", ".join(allowed)


def too_long(field: str, max_length: int) -> str:
    return f"{field} cannot exceed {max_length} characters"


# ---------- CMS fallback content ----------

FALLBACK_HERO = {
    "title": "Discover Your Style",
    "subtitle": "Premium fashion for the modern lifestyle",
    "description": "Explore our curated collection of contemporary fashion",
    "ctaText": "Shop Now",
    "ctaLink": "/shop",
    "variant": "default",
    "isActive": True,
}

FALLBACK_ABOUT = {
    "title": "About Urban Echo",
    "description": "Contemporary style and conscious living",
    "mission": "Provide high-quality, sustainable fashion that empowers personal expression",
    "vision": "A world where fashion is both beautiful and responsible",
    "values": ["Quality", "Sustainability", "Style", "Innovation"],
    "isActive": True,
}

FALLBACK_PAGE_CONFIG = {
    "seoTitle": "Urban Echo | Modern Fashion E-Commerce",
    "seoDescription": (
        "Discover trendy, high-quality clothing at Urban Echo. "
        "Shop our curated collection of contemporary fashion."
    ),
    "showFeaturedProducts": True,
    "showNewArrivals": True,
    "showNewsletter": True,
    "showAboutSection": True,
    "showTestimonials": True,
    "showCategories": True,
    "maxFeaturedProducts": 8,
    "maxNewArrivals": 8,
}


# ---------- Cart / checkout ----------

CART_STORAGE_KEY = "urban_echo_cart"
MAX_CART_ITEMS = 50
MAX_QUANTITY_PER_ITEM = 10
DEFAULT_TAX_RATE = 0.07
FREE_SHIPPING_THRESHOLD = 100.0
STANDARD_SHIPPING_COST = 5.99
ORDER_NUMBER_PREFIX = "UE-"
DEFAULT_COUNTRY = "US"
DEFAULT_CURRENCY = "USD"

# ---------- Users ----------

USER_STORAGE_KEY = "urban-echo-user"
MAX_WISHLIST_ITEMS = 50
MAX_RECENTLY_VIEWED = 10
PLACEHOLDER_IMAGE = "/placeholder-product.jpg"

ROLE_PERMISSIONS = {
    "CUSTOMER": [
        "view_products",
        "manage_cart",
        "checkout",
        "view_orders",
        "manage_profile",
        "write_reviews",
    ],
    "ADMIN": [
        "view_products",
        "manage_cart",
        "checkout",
        "view_orders",
        "manage_profile",
        "write_reviews",
        "manage_products",
        "manage_orders",
        "view_analytics",
    ],
    "SUPER_ADMIN": [
        "view_products",
        "manage_cart",
        "checkout",
        "view_orders",
        "manage_profile",
        "write_reviews",
        "manage_products",
        "manage_orders",
        "view_analytics",
        "manage_users",
        "manage_settings",
    ],
}
ADMIN_ROLES = ("ADMIN", "SUPER_ADMIN")
