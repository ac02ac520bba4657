"""
tests/conftest.py -- Shared test fixtures for the credentials service.

This module provides:
  - settings:  test Settings with fixed, distinct secrets and bcrypt cost 4
  - store:     isolated in-memory UserStore per test
  - accounts:  AccountService wired to that store
  - client:    TestClient over a fresh create_app() bound to that store
  - register_and_login(): helper returning tokens for a new account

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. A uuid in the name keeps every test's database separate.

The DEBUG env var is set before any app import so that get_settings() can
auto-generate secrets if anything reaches for the singleton.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from datetime import datetime, timedelta, timezone

# Set DEBUG before any auth/core import so get_settings() never raises.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from auth.passwords import PasswordHasher
from auth.service import AccountService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings

ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"


class FrozenClock:
    """Callable clock for TokenService that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def memory_db_url(prefix: str = "test_users") -> str:
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        debug=True,
        jwt_secret=ACCESS_SECRET,
        jwt_refresh_secret=REFRESH_SECRET,
        jwt_access_expiration=15,
        jwt_refresh_expiration=168,
        bcrypt_rounds=4,
        users_max_page_size=50,
    )


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def tokens(settings: Settings, clock: FrozenClock) -> TokenService:
    return TokenService(settings, clock=clock)


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore(memory_db_url())
    yield s
    s.close()


@pytest.fixture
def accounts(store: UserStore, hasher: PasswordHasher, tokens: TokenService, settings: Settings) -> AccountService:
    return AccountService(store, hasher, tokens, max_page_size=settings.users_max_page_size)


@pytest.fixture
def client(settings: Settings, store: UserStore) -> Generator[TestClient, None, None]:
    """TestClient over the real app with a patched-in isolated store.

    Entering the context manager runs the lifespan, which builds the token
    service, gate and AccountService around the given store.
    """
    app = create_app(settings=settings, store=store)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


def register_and_login(
    client: TestClient,
    email: str = "t@example.com",
    password: str = "securepw",
    name: str = "Test User",
) -> dict:
    """Register an account over HTTP and return the /login JSON body."""
    resp = client.post("/register", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 201, resp.text
    resp = client.post("/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
