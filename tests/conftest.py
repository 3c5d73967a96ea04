import os

import pytest
from fastapi.testclient import TestClient

# Ensure we default to in-memory backends for tests to avoid network dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")
os.environ.setdefault("IDENTITY_BACKEND", "static")

from taskflow.identity import StaticIdentityProvider  # noqa: E402
from taskflow.main import create_app  # noqa: E402
from taskflow.notifications import Notifier  # noqa: E402
from taskflow.record_store import InMemoryRecordStore  # noqa: E402
from taskflow.services import TaskService  # noqa: E402
from taskflow.settings import get_settings  # noqa: E402

VALID_TOKEN = "valid-token"  # noqa: S105
TEST_USER = {"id": "user-1", "emailAddress": "ada@example.com", "firstName": "Ada"}


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def service(store: InMemoryRecordStore) -> TaskService:
    return TaskService(store)


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def identity() -> StaticIdentityProvider:
    return StaticIdentityProvider({VALID_TOKEN: TEST_USER})


@pytest.fixture
def client(store: InMemoryRecordStore, identity: StaticIdentityProvider) -> TestClient:
    app = create_app(get_settings(), store=store, identity=identity)
    return TestClient(app)


@pytest.fixture
def auth_client(client: TestClient) -> TestClient:
    """A client whose browser session has completed the login callback."""
    res = client.post("/auth/callback", json={"path": "/login", "token": VALID_TOKEN})
    assert res.status_code == 200
    assert res.json()["authenticated"] is True
    return client
