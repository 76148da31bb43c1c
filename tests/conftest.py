"""
tests/conftest.py -- Shared test fixtures for the identity service tests.

This module provides:
  - FakeClock / clock: a controllable "now" injected into IdentityStore, so
    expiry scenarios advance time instead of sleeping
  - RecordingMailer / mailer: captures outbound e-mails instead of sending
  - engine / store: a migrated, isolated in-memory database per test
  - make_user: registers a user (optionally with extra features)
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment must be set before any auth/core import: DEBUG keeps bcrypt at
its minimum cost, ALLOWED_HOSTS admits TestClient's "testserver" host and
LOGIN_RATE_LIMIT is raised so repeated logins never trip the limiter.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

# CRITICAL: Set these before any auth/core import -- get_settings() is cached
# on first use and auth.tokens hashes its dummy password at import time.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("SECURE_COOKIES", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth import users
from auth.models import User
from auth.store import IdentityStore
from core.database import create_db_engine, utcnow
from core.migrator import run_pending

# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Callable clock that only moves when a test advances it."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or utcnow()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingMailer:
    """Mailer that keeps every message in memory."""

    def __init__(self) -> None:
        self.sent: list[dict] = []

    def send(self, *, from_addr: str, to: str, subject: str, text: str) -> None:
        self.sent.append({"from": from_addr, "to": to, "subject": subject, "text": text})

    @property
    def last(self) -> dict:
        return self.sent[-1]


def _memory_db_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def engine():
    """A fresh, fully migrated in-memory database."""
    engine = create_db_engine(_memory_db_url("test_identity"))
    run_pending(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine, clock: FakeClock) -> IdentityStore:
    return IdentityStore(engine, clock=clock)


@pytest.fixture
def make_user(store: IdentityStore):
    """Factory: make_user("alice", features=[...]) -> User.

    The e-mail defaults to <username>@example.com and the password to
    "correct-horse". features, when given, replaces the registration default.
    """

    def _make(
        username: str,
        email: str | None = None,
        password: str = "correct-horse",
        features: list[str] | None = None,
    ) -> User:
        user = users.create(store, username, email or f"{username.lower()}@example.com", password)
        if features is not None:
            user = users.set_features(store, user.id, features)
        return user

    return _make


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(engine, store: IdentityStore, mailer: RecordingMailer):
    """Return an async context manager that replaces the real lifespan.

    Wires the test engine, store and recording mailer into app.state so
    TestClient routes see an isolated database and never touch SMTP.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.engine = engine
        app.state.store = store
        app.state.mailer = mailer
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, IdentityStore, RecordingMailer, FakeClock], None, None]:
    """Yield (client, store, mailer, clock) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers, middleware and exception handlers against an
    isolated, migrated in-memory database.
    """
    engine = create_db_engine(_memory_db_url("test_api"))
    run_pending(engine)
    clock = FakeClock()
    store = IdentityStore(engine, clock=clock)
    mailer = RecordingMailer()

    app.router.lifespan_context = _patch_lifespan(engine, store, mailer)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, store, mailer, clock

    engine.dispose()
