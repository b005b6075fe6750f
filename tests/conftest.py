import itertools
import os

os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ["NODE_ENV"] = "test"

import mongomock
import pytest
import requests
from fastapi.testclient import TestClient

from cms import StrapiClient
from database import create_document, get_db
from main import app, get_cms_client
from schemas import Product


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {"data": []}

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        return self._payload


class FakeSession:
    """Stands in for ``requests.Session``; unreachable until given a response."""

    def __init__(self):
        self.response = None
        self.error = requests.ConnectionError("connection refused")
        self.calls = []
        self.closed = False

    def respond(self, payload=None, status_code=200):
        self.error = None
        self.response = FakeResponse(status_code, payload)

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


@pytest.fixture
def db():
    return mongomock.MongoClient()["urban_echo_test"]


@pytest.fixture
def cms_session():
    return FakeSession()


@pytest.fixture
def cms_client(cms_session):
    return StrapiClient(base_url="http://cms.test", token="test-token", timeout=1, session=cms_session)


@pytest.fixture
def client(db, cms_client):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_cms_client] = lambda: cms_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_product(db):
    counter = itertools.count(1)

    def _make(**overrides):
        n = next(counter)
        fields = {
            "name": f"Test Tee {n}",
            "slug": f"test-tee-{n}",
            "description": "Soft cotton tee",
            "price": 25.0,
            "category": "men",
            "variants": [{"size": "M", "color": "Black", "sku": f"TT-{n}-M", "inventory": 5}],
        }
        fields.update(overrides)
        return create_document(db, "product", Product(**fields))

    return _make


@pytest.fixture
def auth_headers(client):
    def _register(email="shopper@example.com", password="s3cret-pass"):
        client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "firstName": "Sam", "lastName": "Lee"},
        )
        resp = client.post("/api/auth/login", data={"username": email, "password": password})
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _register
