"""
Shared fixtures.

The API runs against MemoryStore through dependency overrides; no Postgres or Redis is
needed. bcrypt runs at cost 4 to keep the suite fast.
"""
import pytest
from fastapi.testclient import TestClient

from fakes import FakeClock, MemoryStore
from helpers import PASSWORD, register_payload
from petpro.core.config import settings
from petpro.core.logger import log_buffer
from petpro.core.rate_limit import LoginRateLimiter, MemoryRateLimitStore, get_login_rate_limiter
from petpro.main import app
from petpro.repositories.unit_of_work import get_uow


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)


@pytest.fixture(autouse=True)
def clean_log_buffer():
    log_buffer.clear()
    yield
    log_buffer.clear()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return LoginRateLimiter(MemoryRateLimitStore(), max_attempts=10, window_seconds=900, clock=clock)


@pytest.fixture
def client(store, limiter):
    app.dependency_overrides[get_uow] = lambda: store.uow
    app.dependency_overrides[get_login_rate_limiter] = lambda: limiter
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    def _register(**overrides):
        return client.post("/auth/register", json=register_payload(**overrides))
    return _register


@pytest.fixture
def login(client):
    def _login(email="admin@test.local", password=PASSWORD, **kwargs):
        return client.post("/auth/login", json={"email": email, "password": password}, **kwargs)
    return _login


@pytest.fixture
def admin_token(register):
    res = register()
    assert res.status_code == 201, res.text
    return res.json()["token"]
