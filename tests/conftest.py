"""
tests/conftest.py -- Shared test fixtures for BookNest integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users + books
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus bearer tokens for two seeded users

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

Settings env vars must be set before any auth/core import: get_settings() is
cached at first call and auth.tokens reads it at module load.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any app import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SECURE_COOKIES", "false")
os.environ.setdefault("COOKIE_SAMESITE", "lax")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from books.store import BookStore

PASSWORD = "Secret-pass1"

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, BookStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Both stores share one named in-memory database, like the real app shares
    Settings.database_url.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    url = f"sqlite:///file:test_booknest_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=url), BookStore(db_url=url)


def _patch_lifespan(user_store: UserStore, books: BookStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.books = books
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Rate limits
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> Generator[None, None, None]:
    """Give every test a fresh limiter window; limits are keyed by client address
    and all TestClient requests share one."""
    limiter.reset()
    yield


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, dict[str, str]], None, None]:
    """Yield (client, tokens) where tokens maps "alice"/"bob" to bearer JWTs.

    Both users are created with password PASSWORD. "carol" is created
    deactivated so the 403 path can be exercised; her token is included too.
    """
    user_store, books = _make_test_stores(request.module.__name__.rsplit(".", 1)[-1])

    tokens: dict[str, str] = {}
    for name, active in (("alice", True), ("bob", True), ("carol", False)):
        uid = user_store.create_user(User(username=name, hashed_password=hash_password(PASSWORD), is_active=active))
        tokens[name] = create_access_token(user_id=uid, username=name, expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(user_store, books)
    limiter.reset()

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, tokens

    user_store.close()
    books.close()

