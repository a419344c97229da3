"""
tests/conftest.py -- Shared test fixtures for Inkwell.

This module provides:
  - settings:                 Settings with a fixed key and the cheapest bcrypt cost
  - settings_factory:         the same, with keyword overrides
  - google:                   StubGoogleVerifier, stands in for GoogleIdentityVerifier
  - stores:                   fresh UserStore + BlogStore on a private in-memory DB
  - reconciler:               AccountReconciler wired to those stores and the stub
  - api_client:               TestClient over the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because route handlers and the reconciler run store calls in worker threads.
Plain :memory: DBs are per-connection and would present a blank schema to
each thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process,
which also lets UserStore and BlogStore see the same tables.

The DEBUG env var must be set before any app import so get_settings() never
raises for a missing SECRET_ACCESS_KEY.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any core/api import.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.google import FEDERATED_AUTH_FAILED_MESSAGE
from auth.models import GoogleIdentity
from auth.reconciler import AccountReconciler
from auth.store import UserStore
from auth.tokens import TokenIssuer
from blogs.store import BlogStore
from core.config import Settings
from core.errors import ErrorKind, InkwellError

TEST_SECRET_KEY = "inkwell-test-secret-key-0123456789abcdef"
TEST_PROJECT_ID = "inkwell-test"


def make_settings(**overrides) -> Settings:
    values = {
        "secret_key": TEST_SECRET_KEY,
        "bcrypt_rounds": 4,
        "firebase_project_id": TEST_PROJECT_ID,
        "request_timeout_seconds": 5.0,
    }
    values.update(overrides)
    return Settings(**values)


class StubGoogleVerifier:
    """Accepts only the assertions registered on it; rejects everything else."""

    def __init__(self) -> None:
        self.identities: dict[str, GoogleIdentity] = {}

    def register(self, assertion: str, email: str, display_name: str, avatar_url: str | None = None) -> None:
        self.identities[assertion] = GoogleIdentity(email=email, display_name=display_name, avatar_url=avatar_url)

    def verify(self, assertion: str) -> GoogleIdentity:
        try:
            return self.identities[assertion]
        except KeyError:
            raise InkwellError(ErrorKind.FEDERATED_AUTH_FAILED, FEDERATED_AUTH_FAILED_MESSAGE) from None


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, BlogStore]:
    """Create a UserStore and BlogStore on one named shared-memory database.

    Args:
        db_suffix: Unique string appended to the DB name so tests and modules
                   never share state.
    """
    url = f"sqlite:///file:test_inkwell_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=url), BlogStore(db_url=url)


@pytest.fixture
def stores() -> Generator[tuple[UserStore, BlogStore], None, None]:
    user_store, blog_store = _make_test_stores(uuid.uuid4().hex)
    yield user_store, blog_store
    blog_store.close()
    user_store.close()


@pytest.fixture
def settings_factory():
    """make_settings() as a fixture, for tests that need a variant Settings."""
    return make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def google() -> StubGoogleVerifier:
    return StubGoogleVerifier()


@pytest.fixture
def reconciler(stores, google, settings) -> AccountReconciler:
    user_store, _ = stores
    return AccountReconciler(user_store, TokenIssuer(settings), google, settings)


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(settings: Settings, user_store: UserStore, blog_store: BlogStore, google: StubGoogleVerifier):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores and the stub verifier into app.state so
    routes see isolated test DBs and never call Google.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.user_store = user_store
        app.state.blog_store = blog_store
        app.state.tokens = TokenIssuer(settings)
        app.state.google = google
        app.state.reconciler = AccountReconciler(user_store, app.state.tokens, google, settings)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real app with isolated stores.

    Tests reach the stub verifier and stores through client.app.state.
    One client per test module for speed; tests use distinct emails.
    """
    user_store, blog_store = _make_test_stores(uuid.uuid4().hex)
    app.router.lifespan_context = _patch_lifespan(make_settings(), user_store, blog_store, StubGoogleVerifier())

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    blog_store.close()
    user_store.close()
