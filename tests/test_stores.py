import json

import pytest

from constants import CART_STORAGE_KEY, MAX_CART_ITEMS, MAX_QUANTITY_PER_ITEM, MAX_RECENTLY_VIEWED
from stores import CartStore, JsonFileStorage, MemoryStorage, UserStore, format_currency

TEE = {"id": "p1", "name": "Tee", "price": 30.0, "slug": "tee", "image": "/tee.jpg", "selectedSize": "M"}


@pytest.fixture
def storage():
    return MemoryStorage()


def test_adding_same_product_twice_merges_lines(storage):
    cart = CartStore(storage)
    assert cart.add_item(TEE)
    assert cart.add_item(TEE)
    assert len(cart.items) == 1
    assert cart.get_item_quantity("p1") == 2
    assert cart.items[0]["size"] == "M"


def test_quantity_cap_leaves_state_unchanged(storage):
    cart = CartStore(storage)
    for _ in range(MAX_QUANTITY_PER_ITEM):
        assert cart.add_item(TEE)
    assert cart.add_item(TEE) is False
    assert cart.get_item_quantity("p1") == MAX_QUANTITY_PER_ITEM

    assert cart.update_quantity("p1", MAX_QUANTITY_PER_ITEM + 1) is False
    assert cart.get_item_quantity("p1") == MAX_QUANTITY_PER_ITEM


def test_distinct_line_cap(storage):
    cart = CartStore(storage)
    for i in range(MAX_CART_ITEMS):
        assert cart.add_item({**TEE, "id": f"p{i}"})
    assert cart.add_item({**TEE, "id": "one-too-many"}) is False
    assert len(cart.items) == MAX_CART_ITEMS
    # existing lines can still be incremented at the cap
    assert cart.add_item({**TEE, "id": "p0"})
    assert cart.get_item_quantity("p0") == 2


def test_update_remove_and_clear(storage):
    cart = CartStore(storage)
    cart.add_item(TEE)
    cart.add_item({**TEE, "id": "p2"})
    assert cart.update_quantity("p1", 4)
    assert cart.get_item_quantity("p1") == 4
    assert cart.update_quantity("missing", 2) is False
    assert cart.update_quantity("p1", 0)
    assert cart.get_item("p1") is None
    assert cart.remove_item("p2")
    cart.add_item(TEE)
    assert cart.clear_cart()
    assert cart.has_items is False


def test_derived_totals(storage):
    cart = CartStore(storage)
    cart.add_item(TEE)
    cart.add_item(TEE)
    assert cart.total_items == 2
    assert cart.subtotal == 60.0
    assert cart.shipping == 5.99
    assert cart.tax == pytest.approx(4.2)
    assert cart.total == pytest.approx(70.19)
    assert cart.formatted_total == "$70.19"
    assert cart.is_free_shipping_eligible is False
    assert cart.free_shipping_progress == pytest.approx(60.0)

    cart.update_quantity("p1", 4)
    assert cart.shipping == 0
    assert cart.free_shipping_progress == 100


def test_cart_persists_and_rehydrates(storage):
    cart = CartStore(storage)
    cart.add_item(TEE)
    stored = json.loads(storage.get_item(CART_STORAGE_KEY))
    assert stored["items"][0]["id"] == "p1"
    assert stored["lastUpdated"]

    again = CartStore(storage)
    assert again.get_item_quantity("p1") == 1


def test_cart_rehydrate_resets_bad_items(storage):
    storage.set_item(CART_STORAGE_KEY, json.dumps({"items": {"not": "a list"}}))
    assert CartStore(storage).items == []
    storage.set_item(CART_STORAGE_KEY, "{broken json")
    assert CartStore(storage).items == []


def test_json_file_storage(tmp_path):
    path = str(tmp_path / "session.json")
    cart = CartStore(JsonFileStorage(path))
    cart.add_item(TEE)
    assert CartStore(JsonFileStorage(path)).get_item_quantity("p1") == 1

    store = JsonFileStorage(path)
    store.remove_item(CART_STORAGE_KEY)
    assert store.get_item(CART_STORAGE_KEY) is None


def test_corrupt_storage_file_rehydrates_empty(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")
    assert CartStore(JsonFileStorage(str(path))).items == []
    assert UserStore(JsonFileStorage(str(path))).wishlist == []

    cart = CartStore(JsonFileStorage(str(path)))
    assert cart.add_item(TEE)
    assert CartStore(JsonFileStorage(str(path))).get_item_quantity("p1") == 1

    path.write_text(json.dumps(["not", "a", "mapping"]), encoding="utf-8")
    assert CartStore(JsonFileStorage(str(path))).items == []


def test_format_currency():
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(0) == "$0.00"


def test_user_store_rejects_invalid_email(storage):
    users = UserStore(storage)
    assert users.set_user({"email": "nope"}) is False
    assert users.is_authenticated is False
    assert users.set_user({"email": "sam@example.com", "firstName": "sam", "lastName": "lee", "role": "ADMIN"})
    assert users.is_authenticated
    assert users.update_user({"email": "bad"}) is False
    assert users.update_user({"name": "Sam Lee"})
    assert users.user_display_name() == "Sam Lee"
    assert users.user_initials() == "SL"
    assert users.is_admin()
    assert users.has_permission("manage_orders")
    assert not users.has_permission("manage_users")
    assert users.has_role("ADMIN")


def test_user_store_guest_helpers(storage):
    users = UserStore(storage)
    assert users.user_display_name() == "Guest"
    assert users.user_initials() == ""
    assert users.has_permission("checkout") is False


def test_wishlist_dedupes(storage):
    users = UserStore(storage)
    product = {"id": "p1", "name": "Tee", "price": 30.0, "slug": "tee", "images": []}
    assert users.add_to_wishlist(product)
    assert users.add_to_wishlist(product)
    assert len(users.wishlist) == 1
    assert users.wishlist[0]["image"] == "/placeholder-product.jpg"
    assert users.is_in_wishlist("p1")
    users.remove_from_wishlist("p1")
    assert not users.is_in_wishlist("p1")


def test_recently_viewed_is_most_recent_first_and_bounded(storage):
    users = UserStore(storage)
    for i in range(MAX_RECENTLY_VIEWED + 2):
        users.add_to_recently_viewed({"id": f"p{i}", "name": f"P{i}"})
    users.add_to_recently_viewed({"id": "p5", "name": "P5"})
    ids = [item["id"] for item in users.recently_viewed]
    assert len(ids) == MAX_RECENTLY_VIEWED
    assert ids[0] == "p5"
    assert ids.count("p5") == 1


def test_preferences_persist_and_logout_clears(storage):
    users = UserStore(storage)
    users.toggle_theme()
    users.add_to_wishlist({"id": "p1"})
    assert UserStore(storage).preferences["theme"] == "dark"
    assert len(UserStore(storage).wishlist) == 1

    users.logout()
    restored = UserStore(storage)
    assert restored.wishlist == []
    assert restored.preferences["theme"] == "dark"
