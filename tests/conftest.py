import os

os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ.setdefault("STRIPE_PUBLIC_KEY", "pk_test_dummy")

import pytest
from typing import Any, Dict, Generator
from fastapi.testclient import TestClient

from catering.app import app as fastapi_app
from catering.cart import registry
from catering.payments import session as payments_session
from catering.payments import widget
from catering.utils.security import require_user
from tests.fakes import FakeGateway, InMemoryStore

TEST_USER_ID = "test-user"

CHILDREN = [
    {"id": "c1", "name": "Budi", "class_name": "3A", "user_id": TEST_USER_ID},
    {"id": "c2", "name": "Sari", "class_name": "5B", "user_id": TEST_USER_ID},
]
MENU_ITEMS = [
    {"id": "m1", "name": "Nasi Goreng", "price": 15000},
    {"id": "m2", "name": "Ayam Bakar", "price": 20000},
    {"id": "m3", "name": "Soto Ayam", "price": 17500},
]

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture()
def test_user() -> Dict[str, Any]:
    return {
        "id": TEST_USER_ID,
        "email": "parent@example.com",
        "metadata": {"full_name": "Parent Test", "phone": "+628123456789"},
        "token": "fake-token",
    }

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app, test_user):
    app.dependency_overrides[require_user] = lambda: test_user
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

# Stockage en mémoire à la place de Supabase, état de checkout vierge
@pytest.fixture(autouse=True)
def memory_store(monkeypatch) -> Generator[InMemoryStore, None, None]:
    store = InMemoryStore()
    store.seed("children", CHILDREN)
    store.seed("menu_items", MENU_ITEMS)
    monkeypatch.setattr("catering.infra.store.get_store", lambda: store)
    registry.reset()
    payments_session._unpersisted_tokens.clear()
    payments_session._checkout_urls.clear()
    yield store
    registry.reset()

# Passerelle Stripe factice (aucun appel réseau)
@pytest.fixture(autouse=True)
def gateway(monkeypatch) -> FakeGateway:
    fake = FakeGateway()
    monkeypatch.setattr("catering.payments.stripe_client.create_session", fake.create_session)
    monkeypatch.setattr("catering.payments.stripe_client.get_session", fake.get_session)
    return fake

@pytest.fixture()
def ready_widget():
    widget.init_widget("pk_test_dummy", "https://js.stripe.com/v3/")
    yield
    widget.teardown_widget()
