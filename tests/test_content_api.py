import cms
from cms import StrapiClient, flatten_entry, process_image_url, transform_content_with_fallbacks
from constants import FALLBACK_ABOUT, FALLBACK_HERO, FALLBACK_PAGE_CONFIG
from main import get_cms_client


def test_page_config_falls_back_when_cms_unreachable(client):
    resp = client.get("/api/content/page-config", params={"page": "shop"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["meta"]["source"] == "fallback"
    assert body["meta"]["fallback"] is True
    assert "connection refused" in body["meta"]["fallbackReason"]
    assert body["data"]["pageName"] == "shop"
    assert body["data"]["seoTitle"] == FALLBACK_PAGE_CONFIG["seoTitle"]
    assert body["data"]["seoDescription"] == FALLBACK_PAGE_CONFIG["seoDescription"]


def test_page_config_from_cms(client, cms_session):
    cms_session.respond(
        {
            "data": [
                {
                    "id": 3,
                    "attributes": {
                        "pageName": "shop",
                        "seoTitle": "Shop | Urban Echo",
                        "seoDescription": "   ",
                        "showNewsletter": False,
                        "maxNewArrivals": 12,
                        "updatedAt": "2024-05-01T10:00:00.000Z",
                    },
                }
            ]
        }
    )

    body = client.get("/api/content/page-config", params={"page": "shop"}).json()
    assert body["meta"]["source"] == "strapi"
    assert "fallback" not in body["meta"]
    assert body["data"]["seoTitle"] == "Shop | Urban Echo"
    assert body["data"]["seoDescription"] == FALLBACK_PAGE_CONFIG["seoDescription"]
    assert body["data"]["showNewsletter"] is False
    assert body["data"]["showCategories"] is True
    assert body["data"]["maxNewArrivals"] == 12
    assert body["data"]["lastUpdated"] == "2024-05-01T10:00:00.000Z"

    call = cms_session.calls[0]
    assert call["url"] == "http://cms.test/api/page-configs"
    assert call["params"]["filters[pageName][$eq]"] == "shop"
    assert call["headers"]["Authorization"] == "Bearer test-token"


def test_page_config_falls_back_on_error_status_and_empty_data(client, cms_session):
    cms_session.respond({"error": "boom"}, status_code=503)
    body = client.get("/api/content/page-config").json()
    assert body["meta"]["source"] == "fallback"
    assert "503" in body["meta"]["fallbackReason"]

    cms_session.respond({"data": []})
    body = client.get("/api/content/page-config").json()
    assert body["meta"]["source"] == "fallback"
    assert body["data"]["pageName"] == "homepage"


def test_hero_single_and_variants(client, cms_session):
    cms_session.respond(
        {
            "data": [
                {
                    "id": 1,
                    "attributes": {
                        "title": "Holiday Edit",
                        "variant": "holiday",
                        "backgroundImage": {"data": {"attributes": {"url": "/uploads/holiday.jpg"}}},
                    },
                }
            ]
        }
    )
    body = client.get("/api/content/hero", params={"variant": "holiday"}).json()
    assert body["meta"]["source"] == "strapi"
    assert body["data"]["title"] == "Holiday Edit"
    assert body["data"]["ctaText"] == FALLBACK_HERO["ctaText"]
    assert body["data"]["backgroundImage"] == "http://cms.test/uploads/holiday.jpg"
    assert cms_session.calls[-1]["params"]["filters[variant][$eq]"] == "holiday"

    body = client.get("/api/content/hero", params={"endpoint": "variants"}).json()
    assert isinstance(body["data"], list)
    assert body["meta"]["requestType"] == "variants"
    assert cms_session.calls[-1]["params"]["filters[variant][$ne]"] == "default"


def test_hero_and_about_fallbacks(client):
    hero = client.get("/api/content/hero").json()
    assert hero["success"] is True
    assert hero["meta"]["source"] == "fallback"
    assert hero["data"]["title"] == FALLBACK_HERO["title"]

    about = client.get("/api/content/about", params={"section": "footer"}).json()
    assert about["meta"]["source"] == "fallback"
    assert about["meta"]["section"] == "footer"
    assert about["data"]["values"] == FALLBACK_ABOUT["values"]


def test_client_without_token_sends_no_authorization(cms_session):
    cms_session.respond({"data": {"id": 1, "attributes": {"title": "About"}}})
    cms = StrapiClient(base_url="http://cms.test/", token="", session=cms_session)
    assert cms.get_entries("about-contents") == [{"title": "About", "id": 1}]
    assert "Authorization" not in cms_session.calls[0]["headers"]
    assert cms_session.calls[0]["url"] == "http://cms.test/api/about-contents"


def test_transform_content_with_fallbacks():
    content = {"title": "  ", "subtitle": "New season", "isActive": False, "values": None}
    fallbacks = {"title": "Default", "subtitle": "Sub", "isActive": True, "values": ["Quality"]}
    result = transform_content_with_fallbacks(content, fallbacks)
    assert result["title"] == "Default"
    assert result["subtitle"] == "New season"
    assert result["isActive"] is False
    assert result["values"] == ["Quality"]
    assert result["lastUpdated"]


def test_process_image_url_and_flatten():
    assert process_image_url(None, "http://cms") is None
    assert process_image_url({"url": "https://cdn.example.com/a.jpg"}, "http://cms") == "https://cdn.example.com/a.jpg"
    assert process_image_url({"url": "/uploads/a.jpg"}, "http://cms/") == "http://cms/uploads/a.jpg"
    assert flatten_entry({"id": 2, "attributes": {"title": "x"}}) == {"title": "x", "id": 2}
    assert flatten_entry({"title": "plain"}) == {"title": "plain"}


def test_non_object_body_falls_back(client, cms_session):
    cms_session.respond(["not", "an", "object"])
    body = client.get("/api/content/page-config", params={"page": "shop"}).json()
    assert body["success"] is True
    assert body["meta"]["source"] == "fallback"
    assert body["meta"]["fallbackReason"] == "Strapi returned an unexpected body"
    assert body["data"]["seoTitle"] == FALLBACK_PAGE_CONFIG["seoTitle"]


def test_non_object_entries_fall_back(client, cms_session):
    cms_session.respond({"data": ["oops"]})
    about = client.get("/api/content/about").json()
    assert about["meta"]["source"] == "fallback"
    assert about["data"]["title"] == FALLBACK_ABOUT["title"]

    cms_session.respond({"data": "oops"})
    hero = client.get("/api/content/hero").json()
    assert hero["meta"]["source"] == "fallback"
    assert hero["data"]["title"] == FALLBACK_HERO["title"]


def test_cms_client_dependency_closes_session(monkeypatch, cms_session):
    monkeypatch.setattr(cms.requests, "Session", lambda: cms_session)
    dependency = get_cms_client()
    client = next(dependency)
    assert client.session is cms_session
    assert cms_session.closed is False

    dependency.close()
    assert cms_session.closed is True
