import re

import pytest
from pydantic import ValidationError

from constants import MAX_WISHLIST_ITEMS
from schemas import Category, Order, OrderItem, Product, User, generate_order_number


def _product(**overrides):
    fields = {"name": "Tee", "slug": "tee", "price": 20.0, "category": "men"}
    fields.update(overrides)
    return Product(**fields)


def test_product_inventory_is_computed_from_variants():
    product = _product(
        variants=[
            {"size": "S", "color": "Black", "sku": "T-S", "inventory": 3},
            {"size": "M", "color": "Black", "sku": "T-M", "inventory": 0},
        ]
    )
    assert product.total_inventory == 3
    assert product.in_stock is True
    dumped = product.model_dump(by_alias=True)
    assert "totalInventory" not in dumped
    assert dumped["isNewArrival"] is False
    assert _product().in_stock is False


def test_product_rejects_duplicate_skus_and_bad_slug():
    with pytest.raises(ValidationError):
        _product(variants=[{"size": "S", "color": "a", "sku": "X"}, {"size": "M", "color": "a", "sku": "X"}])
    with pytest.raises(ValidationError):
        _product(slug="Not A Slug")
    with pytest.raises(ValidationError):
        _product(category="kids")


def test_product_sale_percentage_and_path():
    product = _product(price=75.0, compare_at_price=100.0, subcategory="shirts")
    assert product.sale_percentage == 25
    assert product.category_path == "men/shirts"
    assert _product().sale_percentage == 0


def test_category_full_path():
    assert Category(name="Shirts", slug="shirts", parent_category="men", level=1, path="/shop/men/shirts").full_path == "men/shirts"
    assert Category(name="Men", slug="men", path="/shop/men").full_path == "men"


def test_order_totals_below_free_shipping():
    order = Order(user="u1", items=[OrderItem(product="p1", name="Tee", quantity=2, price=30.0)])
    assert order.items[0].total == 60.0
    assert order.subtotal == 60.0
    assert order.shipping == 5.99
    assert order.tax == 4.2
    assert order.total == 70.19
    assert order.status == "pending"
    assert re.match(r"^UE-\d{13}-[0-9a-z]{9}$", order.order_number)


def test_order_free_shipping_and_validation():
    order = Order(user="u1", items=[OrderItem(product="p1", name="Coat", quantity=1, price=150.0)])
    assert order.shipping == 0
    assert order.total == 160.5
    with pytest.raises(ValidationError):
        Order(user="u1", items=[])
    with pytest.raises(ValidationError):
        OrderItem(product="p1", name="Tee", quantity=0, price=1.0)


def test_order_numbers_are_distinct():
    assert generate_order_number() != generate_order_number()


def test_user_email_is_normalised_and_roles():
    user = User(email="  Sam@Example.COM ", first_name="sam", last_name="lee")
    assert user.email == "sam@example.com"
    assert user.display_name == "sam lee"
    assert user.initials == "SL"
    assert user.has_permission("checkout")
    assert not user.has_permission("manage_products")
    assert not user.is_admin()
    assert User(email="a@example.com", role="SUPER_ADMIN").is_admin()


def test_user_wishlist_is_idempotent_and_bounded():
    user = User(email="sam@example.com")
    assert user.add_to_wishlist("p1")
    assert user.add_to_wishlist("p1")
    assert len(user.wishlist) == 1
    user.remove_from_wishlist("p1")
    assert user.wishlist == []

    for i in range(MAX_WISHLIST_ITEMS):
        assert user.add_to_wishlist(f"p{i}")
    assert user.add_to_wishlist("overflow") is False
    assert len(user.wishlist) == MAX_WISHLIST_ITEMS
