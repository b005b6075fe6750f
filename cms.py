"""
Strapi CMS integration

Marketing content (hero banners, about copy, per-page configuration) is read
from Strapi with a single GET per request. Every lookup returns
``(data, meta)`` and never raises for CMS trouble: when Strapi is
unreachable, answers non-2xx, or has no matching record, the static defaults
from ``constants`` are served instead and ``meta`` says so.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import requests
import structlog

import config
from constants import FALLBACK_ABOUT, FALLBACK_HERO, FALLBACK_PAGE_CONFIG
from errors import ErrorType, handle_error

logger = structlog.get_logger(__name__)

CONTENT_PREFIX = "/api/content"


class CMSUnavailable(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def flatten_entry(entry: Any) -> Any:
    """Strapi v4 wraps fields in ``{"id", "attributes"}``; lift them to the top level."""
    if isinstance(entry, dict) and isinstance(entry.get("attributes"), dict):
        flat = dict(entry["attributes"])
        if "id" in entry:
            flat.setdefault("id", entry["id"])
        return flat
    return entry


class StrapiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or config.STRAPI_URL).rstrip("/")
        self.token = token if token is not None else config.STRAPI_TOKEN
        self.timeout = timeout or config.CMS_TIMEOUT
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}/api/{endpoint}"
        try:
            resp = self.session.get(url, params=params, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise CMSUnavailable(f"Strapi request failed: {e}") from e

        if not resp.ok:
            raise CMSUnavailable(f"Strapi API responded with status: {resp.status_code}", resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise CMSUnavailable("Strapi returned an invalid JSON body", resp.status_code) from e

    def close(self):
        self.session.close()

    def get_entries(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        body = self.get(endpoint, params)
        if body is None:
            return []
        if not isinstance(body, dict):
            raise CMSUnavailable("Strapi returned an unexpected body")
        data = body.get("data")
        if data is None:
            return []
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list) or not all(isinstance(entry, dict) for entry in data):
            raise CMSUnavailable("Strapi returned an unexpected body")
        return [flatten_entry(entry) for entry in data]


def transform_content_with_fallbacks(content: Dict[str, Any], fallbacks: Dict[str, Any]) -> Dict[str, Any]:
    transformed = {}
    for key, fallback in fallbacks.items():
        value = content.get(key)
        if isinstance(fallback, bool):
            transformed[key] = fallback if value is None else value
        elif isinstance(fallback, str):
            value = value.strip() if isinstance(value, str) else value
            transformed[key] = value or fallback
        else:
            transformed[key] = value or fallback

    transformed["isActive"] = content.get("isActive") if content.get("isActive") is not None else True
    transformed["lastUpdated"] = content.get("updatedAt") or _now()
    return transformed


def process_image_url(image: Any, base_url: str) -> Optional[str]:
    if not isinstance(image, dict):
        return None
    url = None
    data = image.get("data")
    if isinstance(data, dict):
        url = (data.get("attributes") or {}).get("url") or data.get("url")
    url = url or image.get("url")
    if not url:
        return None
    if url.startswith("http"):
        return url
    return f"{base_url.rstrip('/')}{url}"


def _fallback(data: Any, meta: Dict[str, Any], reason: str) -> Tuple[Any, Dict[str, Any]]:
    logger.warning("cms_fallback_used", endpoint=meta.get("endpoint"), reason=reason)
    return data, {
        **meta,
        "source": "fallback",
        "fallback": True,
        "fallbackReason": reason,
        "lastUpdated": _now(),
    }


def _report(error: CMSUnavailable, client: StrapiClient, source: str, endpoint: str, **context):
    handle_error(
        error,
        ErrorType.API_ERROR,
        {
            "source": source,
            "action": "fetch-strapi-content",
            "strapiUrl": client.base_url,
            "endpoint": endpoint,
            "responseStatus": error.status,
            **context,
        },
    )


# ---------- Page configuration ----------

def get_page_config(client: StrapiClient, page: str = "homepage") -> Tuple[Dict[str, Any], Dict[str, Any]]:
    meta = {"endpoint": f"{CONTENT_PREFIX}/page-config", "pageName": page}
    params = {"filters[pageName][$eq]": page, "populate": "*"}
    try:
        entries = client.get_entries("page-configs", params)
        if not entries:
            raise CMSUnavailable(f"No page config found for: {page}", 404)
    except CMSUnavailable as e:
        _report(e, client, "page-config-api", "page-configs", pageName=page)
        return _fallback({"pageName": page, **FALLBACK_PAGE_CONFIG}, meta, e.message)

    entry = entries[0]
    data = {"pageName": entry.get("pageName") or page}
    data.update(transform_content_with_fallbacks(entry, FALLBACK_PAGE_CONFIG))
    return data, {**meta, "source": "strapi", "lastUpdated": data["lastUpdated"]}


# ---------- Hero ----------

def _hero_params(variant: str, list_variants: bool) -> Dict[str, str]:
    params = {"populate": "*"}
    if list_variants:
        params["filters[variant][$ne]"] = "default"
    elif variant != "default":
        params["filters[variant][$eq]"] = variant
    return params


def _transform_hero(entry: Dict[str, Any], base_url: str) -> Dict[str, Any]:
    hero = transform_content_with_fallbacks(entry, FALLBACK_HERO)
    hero["backgroundImage"] = process_image_url(entry.get("backgroundImage"), base_url)
    return hero


def get_hero_content(
    client: StrapiClient,
    variant: str = "default",
    list_variants: bool = False,
) -> Tuple[Any, Dict[str, Any]]:
    meta = {
        "endpoint": f"{CONTENT_PREFIX}/hero",
        "variant": variant,
        "requestType": "variants" if list_variants else "single",
    }
    try:
        entries = client.get_entries("hero-contents", _hero_params(variant, list_variants))
        if not entries:
            raise CMSUnavailable(f"No hero content found for variant: {variant}", 404)
    except CMSUnavailable as e:
        _report(e, client, "hero-content-api", "hero-contents", variant=variant)
        default_hero = {**FALLBACK_HERO, "variant": variant, "backgroundImage": None}
        if list_variants:
            default_hero["variant"] = FALLBACK_HERO["variant"]
            return _fallback([default_hero], meta, e.message)
        return _fallback(default_hero, meta, e.message)

    if list_variants:
        data = [_transform_hero(entry, client.base_url) for entry in entries]
        return data, {**meta, "source": "strapi", "count": len(data), "lastUpdated": _now()}

    data = _transform_hero(entries[0], client.base_url)
    return data, {**meta, "source": "strapi", "lastUpdated": data["lastUpdated"]}


# ---------- About ----------

def get_about_content(client: StrapiClient, section: str = "homepage") -> Tuple[Dict[str, Any], Dict[str, Any]]:
    meta = {"endpoint": f"{CONTENT_PREFIX}/about", "section": section}
    try:
        entries = client.get_entries("about-contents", {"populate": "*"})
        if not entries:
            raise CMSUnavailable("No about content found in CMS", 404)
    except CMSUnavailable as e:
        _report(e, client, "about-content-api", "about-contents", section=section)
        return _fallback(dict(FALLBACK_ABOUT), meta, e.message)

    data = transform_content_with_fallbacks(entries[0], FALLBACK_ABOUT)
    return data, {**meta, "source": "strapi", "lastUpdated": data["lastUpdated"]}
