import os

# Settings are read at import time, so the environment is prepared first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ADMIN_EMAIL"] = "admin@shop.com"
os.environ["ADMIN_PASSWORD"] = "admin123"

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from storefront import cache, database
from storefront.main import app


@pytest.fixture
def client(monkeypatch):
    engine = create_async_engine(
        "sqlite+aiosqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )
    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(
        database, "SessionLocal", async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    )
    monkeypatch.setattr(cache, "client", fakeredis.FakeRedis(decode_responses=True))
    with TestClient(app) as c:
        yield c


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client):
    def _register(email="alice@shop.com", password="secret123", name="Alice"):
        res = client.post("/api/auth/register", json={"email": email, "password": password, "name": name})
        assert res.status_code == 201, res.text
        data = res.json()["data"]
        return {"user": data["user"], "headers": bearer(data["access_token"]), "refresh_token": data["refresh_token"]}

    return _register


@pytest.fixture
def customer(register):
    return register()


@pytest.fixture
def admin_headers(client):
    res = client.post("/api/auth/login", json={"email": "admin@shop.com", "password": "admin123"})
    assert res.status_code == 200, res.text
    return bearer(res.json()["data"]["access_token"])


@pytest.fixture
def make_category(client, admin_headers):
    def _make(name="Phones", slug="phones"):
        res = client.post("/api/categories", json={"name": name, "slug": slug}, headers=admin_headers)
        assert res.status_code == 201, res.text
        return res.json()["data"]

    return _make


@pytest.fixture
def make_product(client, admin_headers, make_category):
    state = {}

    def _make(name="Phone X", price=100000, stock=10, **extra):
        if "category_id" not in extra:
            if "category" not in state:
                state["category"] = make_category()
            extra["category_id"] = state["category"]["id"]
        body = {"name": name, "description": f"{name} description", "price": price, "stock": stock, **extra}
        res = client.post("/api/products", json=body, headers=admin_headers)
        assert res.status_code == 201, res.text
        return res.json()["data"]

    return _make


CUSTOMER_INFO = {
    "name": "Alice",
    "email": "alice@shop.com",
    "phone": "0901234567",
    "address": "1 Main St",
    "city": "Hanoi",
}


@pytest.fixture
def place_order(client):
    def _place(headers, items, payment_method="cod"):
        body = {"items": items, "customer_info": CUSTOMER_INFO, "payment_method": payment_method}
        return client.post("/api/orders", json=body, headers=headers)

    return _place


@pytest.fixture
def count_rows(client):
    """Row count of a table, read on the app's event loop."""

    def _count(model, *conditions):
        async def _query():
            async with database.SessionLocal() as db:
                result = await db.execute(select(func.count(model.id)).where(*conditions))
                return result.scalar_one()

        return client.portal.call(_query)

    return _count
