import re
from typing import Any, Dict, Iterable, Optional

from constants import (
    EMAIL_PATTERN,
    INVALID_PRICE_RANGE,
    MAX_PRODUCTS_PER_REQUEST,
    MAX_SEARCH_QUERY_LENGTH,
    NEGATIVE_PRICE,
    OBJECT_ID_PATTERN,
    invalid_format,
    invalid_sort,
    limit_exceeded,
    too_long,
)
from errors import ValidationFailed

_OBJECT_ID_RE = re.compile(OBJECT_ID_PATTERN)
_EMAIL_RE = re.compile(EMAIL_PATTERN)


def validate_pagination(page: Optional[int] = None, limit: Optional[int] = None, max_limit: int = MAX_PRODUCTS_PER_REQUEST):
    if limit is not None and limit > max_limit:
        raise ValidationFailed(limit_exceeded(max_limit), details={"limit": limit, "maxLimit": max_limit})
    if limit is not None and limit < 1:
        raise ValidationFailed(invalid_format("limit"), details={"limit": limit})
    if page is not None and page < 1:
        raise ValidationFailed(invalid_format("page"), details={"page": page})


def validate_price_range(min_price: Optional[float], max_price: Optional[float]):
    if min_price is not None and min_price < 0:
        raise ValidationFailed(NEGATIVE_PRICE, details={"minPrice": min_price})
    if max_price is not None and max_price < 0:
        raise ValidationFailed(NEGATIVE_PRICE, details={"maxPrice": max_price})
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationFailed(INVALID_PRICE_RANGE, details={"minPrice": min_price, "maxPrice": max_price})


def validate_sort(sort_by: Optional[str], allowed: Iterable[str]):
    allowed = list(allowed)
    if sort_by and sort_by not in allowed:
        raise ValidationFailed(invalid_sort(allowed), allowedValues=allowed)


def validate_required_fields(params: Dict[str, Any], required: Iterable[str]):
    missing = [field for field in required if params.get(field) in (None, "")]
    if missing:
        raise ValidationFailed(
            "The following fields are required: " + ", ".join(missing),
            missingFields=missing,
        )


def validate_search_query(query: Optional[str]):
    if query and len(query) > MAX_SEARCH_QUERY_LENGTH:
        raise ValidationFailed(too_long("q", MAX_SEARCH_QUERY_LENGTH))


def is_valid_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_OBJECT_ID_RE.match(value))


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMAIL_RE.match(value))
