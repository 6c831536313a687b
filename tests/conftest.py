"""
tests/conftest.py -- Shared test fixtures for Storefront tests.

This module provides:
  - make_engine(): isolated named in-memory SQLite engine per call
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - engine: function-scoped engine for store unit tests
  - api_client: TestClient + demo-user token for API integration tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment overrides must be set before any auth/core import: auth.tokens
and api.main read get_settings() at import time.
"""

from __future__ import annotations

import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# Cheap bcrypt for speed, a login limit tests never reach, and no seeding from
# the real lifespan (it is replaced below anyway).
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("SEED_DEMO_DATA", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app
from auth.store import UserStore
from auth.tokens import hash_password, issue_token
from catalog.store import ProductStore
from core.database import create_db_engine

_db_counter = itertools.count()

# Demo account created by UserStore.seed_demo_users(); first row, so id 1.
DEMO_EMAIL = "juan@example.com"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_engine(name: str) -> Engine:
    """Return an engine bound to a fresh named shared-memory database.

    A counter is appended so two fixtures never share a database, even
    within the same module.
    """
    url = f"sqlite:///file:test_{name}_{next(_db_counter)}?mode=memory&cache=shared&uri=true"
    return create_db_engine(url)


def _patch_lifespan(engine: Engine, user_store: UserStore, product_store: ProductStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.engine = engine
        app.state.user_store = user_store
        app.state.product_store = product_store
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Function-scoped empty database for store unit tests."""
    eng = make_engine("unit")
    yield eng
    eng.dispose()


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use an isolated in-memory database,
    seeded with the demo users and products. The token belongs to the first
    demo user (Juan Pérez).
    """
    eng = make_engine(request.module.__name__.rsplit(".", 1)[-1])
    user_store = UserStore(eng)
    product_store = ProductStore(eng)
    user_store.seed_demo_users(hash_password)
    product_store.seed_demo_products()

    user = user_store.get_by_email(DEMO_EMAIL)
    token = issue_token(user.id)

    app.router.lifespan_context = _patch_lifespan(eng, user_store, product_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, user.id

    eng.dispose()
