import pytest

from errors import ValidationFailed
from validation import (
    is_valid_email,
    is_valid_object_id,
    validate_pagination,
    validate_price_range,
    validate_required_fields,
    validate_search_query,
    validate_sort,
)


def test_pagination_limits():
    validate_pagination(page=1, limit=50, max_limit=50)
    with pytest.raises(ValidationFailed) as exc:
        validate_pagination(limit=51, max_limit=50)
    assert exc.value.status_code == 400
    assert exc.value.error == "Validation failed"
    assert "50" in exc.value.message
    with pytest.raises(ValidationFailed):
        validate_pagination(page=0)


def test_price_range():
    validate_price_range(None, None)
    validate_price_range(10, 10)
    with pytest.raises(ValidationFailed):
        validate_price_range(100, 50)
    with pytest.raises(ValidationFailed):
        validate_price_range(-1, None)


def test_sort_reports_allowed_values():
    validate_sort(None, ["newest"])
    with pytest.raises(ValidationFailed) as exc:
        validate_sort("cheapest", ["newest", "oldest"])
    assert exc.value.extra["allowedValues"] == ["newest", "oldest"]


def test_required_fields_reports_missing():
    with pytest.raises(ValidationFailed) as exc:
        validate_required_fields({"type": "API_ERROR", "message": ""}, ["type", "message"])
    assert exc.value.extra["missingFields"] == ["message"]


def test_search_query_length():
    validate_search_query("x" * 200)
    with pytest.raises(ValidationFailed):
        validate_search_query("x" * 201)


def test_predicates():
    assert is_valid_object_id("507f1f77bcf86cd799439011")
    assert not is_valid_object_id("classic-oxford-shirt")
    assert not is_valid_object_id(None)
    assert is_valid_email("a@b.co")
    assert not is_valid_email("not-an-email")
    assert not is_valid_email("a b@c.com")
