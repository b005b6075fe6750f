import requests

import config
import errors
from errors import ErrorType, NotFound, get_log_level, handle_error


def test_log_levels_follow_error_type():
    assert get_log_level(ErrorType.DATABASE_ERROR) == "error"
    assert get_log_level(ErrorType.AUTHENTICATION_ERROR) == "error"
    assert get_log_level(ErrorType.TIMEOUT_ERROR) == "warning"
    assert get_log_level(ErrorType.VALIDATION_ERROR) == "info"


def test_handle_error_builds_record_without_reporting_outside_production(monkeypatch):
    reported = []
    monkeypatch.setattr(errors, "report_error", lambda info, url=None: reported.append(info))

    try:
        raise ValueError("bad input")
    except ValueError as e:
        info = handle_error(e, ErrorType.VALIDATION_ERROR, {"source": "unit-test"})

    assert info["type"] == "VALIDATION_ERROR"
    assert info["message"] == "bad input"
    assert info["context"] == {"source": "unit-test"}
    assert "ValueError" in info["stack"]
    assert reported == []


def test_handle_error_reports_in_production(monkeypatch):
    reported = []
    monkeypatch.setattr(config, "NODE_ENV", "production")
    monkeypatch.setattr(errors, "report_error", lambda info, url=None: reported.append(info))

    info = handle_error(NotFound("Product", "abc"), ErrorType.NOT_FOUND_ERROR)
    assert reported == [info]
    assert info["message"] == "No product found with identifier: abc"


def test_failed_report_is_swallowed(monkeypatch):
    def refuse(*args, **kwargs):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(requests, "post", refuse)
    errors._post_error_report({"type": "API_ERROR"}, "http://localhost:1/api/errors")


def test_report_error_posts_record(monkeypatch):
    posted = []
    monkeypatch.setattr(requests, "post", lambda url, json=None, timeout=None: posted.append((url, json)))
    errors.report_error({"type": "SERVER_ERROR"}, "http://errors.test/api/errors").join(timeout=5)
    assert posted == [("http://errors.test/api/errors", {"type": "SERVER_ERROR"})]


def test_error_collection_endpoint(client):
    ok = client.post("/api/errors", json={"type": "API_ERROR", "message": "Hero failed", "context": {"source": "hero"}})
    assert ok.status_code == 200
    assert ok.json()["data"]["errorId"].startswith("error_")

    missing = client.post("/api/errors", json={"type": "API_ERROR"})
    assert missing.status_code == 400
    assert missing.json()["missingFields"] == ["message"]

    status = client.get("/api/errors").json()
    assert status["data"]["status"] == "active"


def test_newsletter_subscribe(client, db):
    missing = client.post("/api/newsletter/subscribe", json={})
    assert missing.status_code == 400
    assert missing.json()["message"] == "Email is required"

    invalid = client.post("/api/newsletter/subscribe", json={"email": "not-an-email"})
    assert invalid.status_code == 400
    assert invalid.json()["message"] == "Please enter a valid email address"

    for _ in range(2):
        ok = client.post("/api/newsletter/subscribe", json={"email": "Fan@Example.com"})
        assert ok.status_code == 200
        assert ok.json()["data"]["email"] == "fan@example.com"
    assert db["newsletter"].count_documents({}) == 1


def test_root_and_diagnostics(client):
    assert client.get("/").json()["message"] == "Urban Echo API is running"
    diagnostics = client.get("/test").json()
    assert diagnostics["connection_status"] == "Connected"
