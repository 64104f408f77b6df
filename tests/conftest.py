"""
tests/conftest.py -- Shared test fixtures for the SSO service.

This module provides:
  - store / issuer / service: unit-level fixtures over a private in-memory DB
  - app_id: a provisioned App in that DB
  - _patch_lifespan(): wires test objects into app.state, bypassing real startup
  - api_client: TestClient over the real FastAPI app with isolated state

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs the service in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

The DEBUG env var must be set before any api/ import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import secrets
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import timedelta

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import Settings

TEST_SECRET = secrets.token_hex(32)


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    """Fresh in-memory UserStore per test. Ids start at 1."""
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def secret_key() -> str:
    return TEST_SECRET


@pytest.fixture
def issuer(secret_key: str) -> TokenIssuer:
    return TokenIssuer(secret_key)


@pytest.fixture
def service(store: UserStore, issuer: TokenIssuer) -> AuthService:
    return AuthService(store, issuer, timedelta(hours=1))


@pytest.fixture
def app_id(store: UserStore) -> int:
    return store.create_app("Test App")


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(settings: Settings, user_store: UserStore, auth_service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test objects into app.state so TestClient routes see an
    isolated test DB and a known signing key.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.user_store = user_store
        app.state.auth_service = auth_service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, TokenIssuer, UserStore, int], None, None]:
    """Yield (client, issuer, user_store, app_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers and the real AuthService over an isolated store.
    One app is provisioned before the client starts.
    """
    settings = Settings(_env_file=None, debug=True, secret_key=TEST_SECRET, token_ttl_seconds=3600)
    user_store = UserStore("sqlite:///file:test_sso_api?mode=memory&cache=shared&uri=true")
    issuer = TokenIssuer.from_settings(settings)
    auth_service = AuthService(user_store, issuer, settings.token_ttl)
    provisioned_app = user_store.create_app("Portal")

    app.router.lifespan_context = _patch_lifespan(settings, user_store, auth_service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, issuer, user_store, provisioned_app

    user_store.close()
