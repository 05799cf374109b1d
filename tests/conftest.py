"""
tests/conftest.py -- Shared test fixtures for AuthGate unit and integration tests.

This module provides:
  - hasher: a PasswordHasher at bcrypt's minimum cost so tests stay fast
  - db: an isolated in-memory AuthDatabase per test
  - make_admin / make_user: seed principals directly through the store
  - api_client: TestClient over the real app with a patched lifespan that
    wires a per-test file-backed database into app.state

The env vars below must be set before any api/ or core/ import so that
get_settings() sees DEBUG=true and a known ADMIN_SECRET_KEY instead of
refusing to start in production mode.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any core/api import so get_settings() picks these up.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ADMIN_SECRET_KEY", "test-admin-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Admin, Permission, User
from auth.passwords import PasswordHasher
from auth.store import AuthDatabase
from core.config import get_settings

STRONG_PASSWORD = "Aa1!aaaa"


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    """bcrypt at cost 4 -- the floor bcrypt allows. Production uses 10."""
    return PasswordHasher(rounds=4)


@pytest.fixture(scope="session")
def admin_secret() -> str:
    """The shared secret the app was configured with."""
    return get_settings().admin_secret_key


@pytest.fixture
def db() -> Generator[AuthDatabase, None, None]:
    """Fresh in-memory database. Each test sees empty user and admin tables."""
    database = AuthDatabase("sqlite:///:memory:")
    yield database
    database.close()


@pytest.fixture
def make_admin(db: AuthDatabase, hasher: PasswordHasher) -> Callable[..., Admin]:
    """Factory that inserts an admin straight into the store, bypassing registration.

    Lets tests create states registration cannot produce: deactivated admins
    and admins without the delete permission.
    """

    def _make(
        email: str = "root@example.com",
        password: str = STRONG_PASSWORD,
        name: str = "Root Admin",
        permissions: list[Permission] | None = None,
        is_active: bool = True,
    ) -> Admin:
        admin = Admin(name=name, email=email, password_hash=hasher.hash(password), is_active=is_active)
        if permissions is not None:
            admin.permissions = list(permissions)
        return db.admins.save(admin)

    return _make


@pytest.fixture
def make_user(db: AuthDatabase, hasher: PasswordHasher) -> Callable[..., User]:
    def _make(email: str = "user@example.com", password: str = STRONG_PASSWORD, name: str = "Plain User") -> User:
        return db.users.save(User(name=name, email=email, password_hash=hasher.hash(password)))

    return _make


# ---------------------------------------------------------------------------
# Integration client
# ---------------------------------------------------------------------------


def _patch_lifespan(auth_db: AuthDatabase, hasher: PasswordHasher):
    """Return an async context manager that replaces the real lifespan.

    Wires a pre-created test database into app.state so TestClient routes see
    an isolated store rather than the default on-disk database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = get_settings()
        app.state.auth_db = auth_db
        app.state.hasher = hasher
        yield

    return test_lifespan


@pytest.fixture
def api_client(tmp_path, hasher: PasswordHasher) -> Generator[tuple[TestClient, AuthDatabase], None, None]:
    """Yield (client, auth_db) backed by a throwaway SQLite file.

    A file (not :memory:) because TestClient runs sync route handlers in a
    worker thread pool, and every thread must see the same tables.
    """
    auth_db = AuthDatabase(f"sqlite:///{tmp_path / 'auth.db'}")
    app.router.lifespan_context = _patch_lifespan(auth_db, hasher)

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client, auth_db

    auth_db.close()
