import os

# Settings are read at import time, so the environment must be in place first
os.environ.setdefault("DATABASE_USERNAME", "solarconnect")
os.environ.setdefault("DATABASE_PASSWORD", "solarconnect")
os.environ.setdefault("DATABASE_HOSTNAME", "localhost")
os.environ.setdefault("DATABASE_PORT", "5432")
os.environ.setdefault("DATABASE_NAME", "solarconnect_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient

from solarconnect.database import get_db
from solarconnect.main import app
from solarconnect.services.payment_gateway import get_payment_gateway
from solarconnect.utils.auth import create_access_token, get_password_hash

from tests.fakes import FakeConnection, FakeGateway, install_fake_queries

PASSWORD = "sunshine123"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def password_hash():
    return get_password_hash(PASSWORD)


@pytest.fixture
def conn(monkeypatch):
    install_fake_queries(monkeypatch)
    return FakeConnection()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(conn, gateway):
    async def override_get_db():
        yield conn

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(conn, password_hash):
    counter = {"n": 0}

    def _make_user(role="user", **fields):
        counter["n"] += 1
        username = fields.pop("username", f"{role}{counter['n']}")
        return conn.add_user(
            username=username,
            email=fields.pop("email", f"{username}@example.com"),
            password_hash=password_hash,
            role=role,
            name=fields.pop("name", username.title()),
            **fields,
        )

    return _make_user


@pytest.fixture
def make_technician(conn, make_user):
    """Technician-role user plus profile; returns ``(user, technician)``."""

    def _make_technician(**fields):
        user = make_user("technician")
        return user, conn.add_technician(user["id"], **fields)

    return _make_technician


def auth_headers(user):
    token = create_access_token({"sub": str(user["id"]), "role": user["role"]})
    return {"Authorization": f"Bearer {token}"}
