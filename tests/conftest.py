"""Shared pytest fixtures: in-memory MongoDB, a seeded tenant and an API client."""

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

import config
import main
from database import APP_CONFIGS, ensure_indexes, get_db, now


PRODUCTS = [
    {"productName": "Red Shirt", "description": "Cotton tee", "price": "$20.00", "discountPrice": "$15.00"},
    {"productName": "Blue Jeans", "description": "Dark denim, red stitching", "price": "$40.00"},
    {"productName": "Green Hat", "description": "Wool", "price": "$10.00"},
    {"productName": "Scarf", "description": "Bright RED wool", "price": "$12.00"},
]

PASSWORD = "s3cret-pass"


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    monkeypatch.setattr(config, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def db():
    database = mongomock.MongoClient()["storefront_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def tenant_id(db):
    """A storefront with a product catalog."""
    tenant = ObjectId()
    db[APP_CONFIGS].insert_one({
        "_id": tenant,
        "shopName": "phoneshop",
        "appName": "Phone Shop",
        "category": "electronics",
        "pages": [{"name": "home", "widgets": []}],
        "dynamicFields": {"gstNumber": "22AAAAA0000A1Z5", "productCards": [dict(p) for p in PRODUCTS]},
        "status": "published",
        "updatedAt": now(),
    })
    return str(tenant)


@pytest.fixture
def other_tenant_id(db):
    tenant = ObjectId()
    db[APP_CONFIGS].insert_one({"_id": tenant, "shopName": "bookshop", "dynamicFields": {}})
    return str(tenant)


@pytest.fixture
def client(db):
    main.app.dependency_overrides[get_db] = lambda: db
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def register_payload(tenant_id, email="ada@mail.com", **overrides):
    payload = {
        "adminObjectId": tenant_id,
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": email,
        "password": PASSWORD,
        "phone": "5550100",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def user(client, tenant_id):
    """A registered shopper: the register response data."""
    resp = client.post("/api/users/register", json=register_payload(tenant_id))
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {user['token']}"}
