"""
tests/conftest.py -- Shared test fixtures for VidTube unit and integration tests.

This module provides:
  - token_service / user_store / auth_service: isolated unit-test objects
  - api_client: TestClient wired to isolated stores through a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the TestClient because sync route handlers run in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Unit tests call the store from one thread, so plain :memory:
is fine there.

DEBUG, LOGIN_RATE_LIMIT and UPLOAD_TEMP_DIR must be set before any app
import: get_settings() is cached and the login limit is read at import time.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Generator
from contextlib import asynccontextmanager
from types import SimpleNamespace

# CRITICAL: Set before any app import so get_settings() auto-generates the
# token secrets in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("UPLOAD_TEMP_DIR", tempfile.mkdtemp(prefix="vidtube-test-"))
# Tests talk plain http, so secure cookies are stored but never sent back;
# sessions travel in Bearer headers and request bodies instead.
os.environ["SECURE_COOKIES"] = "true"

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenConfig, TokenService
from helpers import StubUploader
from subscriptions.store import SubscriptionStore

ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(TokenConfig(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET))


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def uploader() -> StubUploader:
    return StubUploader()


@pytest.fixture
def auth_service(user_store: UserStore, token_service: TokenService, uploader: StubUploader) -> AuthService:
    return AuthService(user_store, token_service, uploader)


# ---------------------------------------------------------------------------
# Integration fixture -- one TestClient per test module
# ---------------------------------------------------------------------------


def _patch_lifespan(services: SimpleNamespace):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores and the stub uploader into app.state so
    routes see isolated test DBs and never call the real media host.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = services.user_store
        app.state.subscription_store = services.subscription_store
        app.state.tokens = services.tokens
        app.state.media_uploader = services.uploader
        app.state.auth_service = services.auth_service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, SimpleNamespace], None, None]:
    """Yield (client, services) for API integration tests.

    services exposes user_store, subscription_store, tokens, uploader and
    auth_service so tests can arrange state directly or inspect the DB.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    db_url = f"sqlite:///file:test_{suffix}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url)
    subscription_store = SubscriptionStore(db_url)
    tokens = TokenService(TokenConfig(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET))
    uploader = StubUploader()
    services = SimpleNamespace(
        user_store=user_store,
        subscription_store=subscription_store,
        tokens=tokens,
        uploader=uploader,
        auth_service=AuthService(user_store, tokens, uploader),
    )

    app.router.lifespan_context = _patch_lifespan(services)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, services

    subscription_store.close()
    user_store.close()

