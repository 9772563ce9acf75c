"""
tests/conftest.py -- Shared test fixtures for Biblio unit and integration tests.

This module provides:
  - make_test_store(): creates an isolated named shared-memory catalog DB
  - _patch_lifespan(): wires a test store into app.state, bypassing real startup
  - credentials / store / resources: service objects for unit tests
  - api_client: TestClient over the real app for integration tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the TestClient because route handlers run in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

Environment variables must be set before any core/api import so
get_settings() sees them the first time it is called.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before importing api.main, which reads settings at import time.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("TOKEN_SECRET", "test-token-secret-0123456789abcdef0123")
os.environ.setdefault("SESSION_SECRET", "test-session-secret-0123456789abcdef01")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "25/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_services
from auth.tokens import CredentialService
from catalog.service import ResourceService
from catalog.store import CatalogStore

TEST_SECRET = "unit-test-secret-0123456789abcdef0123456789"
STRONG_PASSWORD = "Abc123!@"

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_store(db_suffix: str) -> CatalogStore:
    """Create an isolated named shared-memory SQLite store.

    A uuid is appended so two stores made with the same suffix never share
    rows, even inside one process.
    """
    name = f"test_biblio_{db_suffix}_{uuid.uuid4().hex}"
    return CatalogStore(f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(store: CatalogStore, credentials: CredentialService):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, store, credentials)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def credentials() -> CredentialService:
    """Low bcrypt cost keeps hashing fast; the secret is fixed for token tests."""
    return CredentialService(secret=TEST_SECRET, expires_in="1d", rounds=4)


@pytest.fixture
def store() -> Generator[CatalogStore, None, None]:
    s = make_test_store("unit")
    yield s
    s.close()


@pytest.fixture
def resources(store: CatalogStore, credentials: CredentialService) -> ResourceService:
    return ResourceService(store, credentials)


@pytest.fixture
def institution(resources: ResourceService):
    """An institution owning the mit.edu domain."""
    result = resources.create_institution(
        {"name": "Massachusetts Institute", "url": "https://mit.edu", "domain": "mit.edu"}
    )
    assert result.ok, result.message
    return result.data


@pytest.fixture
def author(resources: ResourceService):
    result = resources.create_author({"name": "Donald Knuth"})
    assert result.ok, result.message
    return result.data


@pytest.fixture
def user(resources: ResourceService, institution):
    """A student at the mit.edu institution with password STRONG_PASSWORD."""
    result = resources.create_user(
        {"name": "Ada Lovelace", "email": "ada@mit.edu", "role": "student", "password": STRONG_PASSWORD}
    )
    assert result.ok, result.message
    return result.data


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(credentials: CredentialService) -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real app with an isolated in-memory store.

    Tests hit real route handlers and middleware; only the lifespan is
    swapped so the production database is never opened.
    """
    store = make_test_store("api")
    app.router.lifespan_context = _patch_lifespan(store, credentials)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    store.close()
