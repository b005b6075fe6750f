"""
Sample catalog used by ``POST /api/seed``.
"""
from typing import Dict, List

import structlog
from pymongo.database import Database

from database import create_document, ensure_indexes
from schemas import Category, Product

logger = structlog.get_logger(__name__)


def _category(name, slug, parent=None, order=0, main=False):
    return Category(
        name=name,
        slug=slug,
        parent_category=parent,
        level=1 if parent else 0,
        path=f"/shop/{parent}/{slug}" if parent else f"/shop/{slug}",
        navigation_order=order,
        is_main_navigation=main,
    )


CATEGORIES: List[Category] = [
    _category("Men", "men", order=1, main=True),
    _category("Women", "women", order=2, main=True),
    _category("Accessories", "accessories", order=3, main=True),
    _category("Sale", "sale", order=4, main=True),
    _category("Shirts", "shirts", parent="men", order=1),
    _category("Jackets", "jackets", parent="men", order=2),
    _category("Pants", "pants", parent="men", order=3),
    _category("Dresses", "dresses", parent="women", order=1),
    _category("Tops", "tops", parent="women", order=2),
    _category("Bags", "bags", parent="accessories", order=1),
    _category("Watches", "watches", parent="accessories", order=2),
]


def _variants(prefix: str, colors, sizes, inventory=10) -> List[Dict]:
    return [
        {"size": size, "color": color, "sku": f"{prefix}-{color[:3].upper()}-{size}", "inventory": inventory}
        for color in colors
        for size in sizes
    ]


PRODUCTS: List[Product] = [
    Product(
        name="Classic Oxford Shirt",
        slug="classic-oxford-shirt",
        description="Crisp cotton oxford with a button-down collar.",
        price=59.0,
        category="men",
        subcategory="shirts",
        brand="Urban Echo",
        images=[{"url": "/images/products/oxford-shirt.jpg", "alt": "Classic Oxford Shirt"}],
        variants=_variants("UE-OXF", ["White", "Blue"], ["S", "M", "L"]),
        tags=["cotton", "office", "classic"],
        collections=["featured", "best-sellers"],
        is_featured=True,
        is_best_seller=True,
        average_rating=4.6,
        review_count=38,
        sales_count=420,
    ),
    Product(
        name="Waxed Field Jacket",
        slug="waxed-field-jacket",
        description="Water-resistant waxed canvas jacket with corduroy collar.",
        price=189.0,
        compare_at_price=229.0,
        category="men",
        subcategory="jackets",
        brand="Urban Echo",
        images=[{"url": "/images/products/field-jacket.jpg", "alt": "Waxed Field Jacket"}],
        variants=_variants("UE-FLD", ["Olive"], ["M", "L", "XL"], inventory=4),
        tags=["outerwear", "waxed"],
        collections=["new-arrivals", "sale"],
        is_new_arrival=True,
        is_on_sale=True,
        average_rating=4.8,
        review_count=12,
        sales_count=95,
    ),
    Product(
        name="Slim Chino Pant",
        slug="slim-chino-pant",
        description="Stretch twill chinos cut slim through the leg.",
        price=79.0,
        category="men",
        subcategory="pants",
        brand="Urban Echo",
        images=[{"url": "/images/products/chino.jpg", "alt": "Slim Chino Pant"}],
        variants=_variants("UE-CHN", ["Khaki", "Navy"], ["30", "32", "34"]),
        tags=["chino", "stretch"],
        collections=["best-sellers"],
        is_best_seller=True,
        average_rating=4.3,
        review_count=51,
        sales_count=610,
    ),
    Product(
        name="Linen Wrap Dress",
        slug="linen-wrap-dress",
        description="Breathable linen wrap dress with a tie waist.",
        price=129.0,
        category="women",
        subcategory="dresses",
        brand="Urban Echo",
        images=[{"url": "/images/products/wrap-dress.jpg", "alt": "Linen Wrap Dress"}],
        variants=_variants("UE-WRP", ["Sand", "Black"], ["XS", "S", "M", "L"]),
        tags=["linen", "summer"],
        collections=["featured", "new-arrivals"],
        is_featured=True,
        is_new_arrival=True,
        average_rating=4.7,
        review_count=22,
        sales_count=180,
    ),
    Product(
        name="Ribbed Knit Top",
        slug="ribbed-knit-top",
        description="Fitted rib-knit top in soft organic cotton.",
        price=39.0,
        category="women",
        subcategory="tops",
        brand="Urban Echo",
        images=[{"url": "/images/products/knit-top.jpg", "alt": "Ribbed Knit Top"}],
        variants=_variants("UE-RIB", ["Ivory", "Rose"], ["XS", "S", "M"], inventory=0),
        tags=["knit", "organic"],
        collections=["new-arrivals"],
        is_new_arrival=True,
        average_rating=4.1,
        review_count=9,
        sales_count=60,
    ),
    Product(
        name="Leather Weekender Bag",
        slug="leather-weekender-bag",
        description="Full-grain leather holdall sized for two nights away.",
        price=249.0,
        category="accessories",
        subcategory="bags",
        brand="Urban Echo",
        images=[{"url": "/images/products/weekender.jpg", "alt": "Leather Weekender Bag"}],
        variants=[{"size": "OS", "color": "Tan", "sku": "UE-WKD-TAN-OS", "inventory": 6}],
        tags=["leather", "travel"],
        collections=["featured", "limited-edition"],
        is_featured=True,
        is_limited_edition=True,
        average_rating=4.9,
        review_count=17,
        sales_count=48,
    ),
    Product(
        name="Minimal Steel Watch",
        slug="minimal-steel-watch",
        description="38mm brushed steel case on a mesh strap.",
        price=149.0,
        category="accessories",
        subcategory="watches",
        brand="Urban Echo",
        images=[{"url": "/images/products/steel-watch.jpg", "alt": "Minimal Steel Watch"}],
        variants=[{"size": "OS", "color": "Silver", "sku": "UE-WTC-SIL-OS", "inventory": 15}],
        tags=["watch", "steel"],
        collections=["trending"],
        is_trending=True,
        average_rating=4.5,
        review_count=30,
        sales_count=210,
    ),
]


def seed_database(db: Database, force: bool = False) -> Dict[str, int]:
    ensure_indexes(db)

    if force:
        db["category"].delete_many({})
        db["product"].delete_many({})

    inserted = {"categories": 0, "products": 0}
    if db["category"].count_documents({}) == 0:
        for category in CATEGORIES:
            create_document(db, "category", category)
            inserted["categories"] += 1
    if db["product"].count_documents({}) == 0:
        for product in PRODUCTS:
            create_document(db, "product", product)
            inserted["products"] += 1

    logger.info("database_seeded", force=force, **inserted)
    return inserted
