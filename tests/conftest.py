import os

import pytest

# Settings are read when the app module is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient

from invoicer.api.deps import get_store
from invoicer.main import app
from invoicer.services.kv import KeyValueStore

SELLER = {"name": "Acme Inc", "address": "123 Office Rd, City, Country", "email": "invoices@acme.com"}
BUYER = {"name": "Jane Doe", "address": "456 Home St, City, Country", "email": "jane@example.com"}


@pytest.fixture
def store(tmp_path):
    return KeyValueStore.from_url(f"sqlite:///{tmp_path / 'kv.sqlite'}")


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def account(client):
    """A registered user; returns (user, headers)."""
    res = client.post("/users", json={
        "name": "John Doe",
        "email": "john@example.com",
        "defaults": {"seller": SELLER, "currency": "USD", "notes": "Thanks for your business"},
    })
    assert res.status_code == 201
    data = res.json()
    return data["user"], {"Authorization": f"Bearer {data['apiKey']}"}


@pytest.fixture
def folder(client, account):
    _, headers = account
    res = client.post("/folders", json={
        "name": "Project Alpha",
        "company": "ACME Corporation",
        "defaults": {"buyer": BUYER, "currency": "EUR"},
    }, headers=headers)
    assert res.status_code == 201
    return res.json()
