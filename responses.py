from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from bson import ObjectId
from fastapi import Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from query_builders import build_pagination_meta


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json(body: Dict[str, Any], status: int, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(
        content=jsonable_encoder(body, custom_encoder={ObjectId: str}),
        status_code=status,
        headers=headers,
    )


def success_response(data: Any, meta: Optional[Dict[str, Any]] = None, status: int = 200) -> JSONResponse:
    return _json(
        {"success": True, "data": data, "meta": {"timestamp": _timestamp(), **(meta or {})}},
        status,
    )


def paginated_response(
    data: Any,
    page: int,
    limit: int,
    total: int,
    meta: Optional[Dict[str, Any]] = None,
    status: int = 200,
) -> JSONResponse:
    return _json(
        {
            "success": True,
            "data": data,
            "pagination": build_pagination_meta(page, limit, total),
            "meta": {"timestamp": _timestamp(), **(meta or {})},
        },
        status,
    )


def error_response(
    error: str,
    message: str,
    meta: Optional[Dict[str, Any]] = None,
    status: int = 500,
    headers: Optional[Dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    body = {"success": False, "error": error, "message": message, **extra}
    body["meta"] = {"timestamp": _timestamp(), **(meta or {})}
    return _json(body, status, headers)


def cors_response(methods: Iterable[str] = ("GET", "OPTIONS"), headers: Iterable[str] = ("Content-Type",)) -> Response:
    return Response(
        status_code=200,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": ", ".join(methods),
            "Access-Control-Allow-Headers": ", ".join(headers),
        },
    )


def product_meta(endpoint: str, filters: Optional[Dict[str, Any]] = None, source: str = "mongodb") -> Dict[str, Any]:
    return {"endpoint": endpoint, "source": source, "filters": filters or {}}
