"""
tests/test_migrator.py -- Tests for schema migration discovery and execution.

Covers:
  - discover(): every migration module, ordered by timestamp prefix
  - list_pending(): dry run on a fresh database, empty once applied
  - run_pending(): applies in order, records bookkeeping, is idempotent
  - The resulting schema enforces case-insensitive uniqueness
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError

from core.database import create_db_engine
from core.migrator import discover, list_pending, run_pending


@pytest.fixture
def fresh_engine():
    engine = create_db_engine(f"sqlite:///file:test_migrator_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    yield engine
    engine.dispose()


class TestMigrator:
    def test_discover_orders_by_timestamp(self) -> None:
        migrations = discover()
        assert [m.name for m in migrations] == [
            "20250110120000_create_users",
            "20250118093000_create_sessions",
            "20250203150000_create_user_activation_tokens",
        ]
        assert migrations[0].timestamp == 20250110120000
        assert migrations[0].path.replace("\\", "/") == "core/migrations/20250110120000_create_users.py"

    def test_pending_on_fresh_database(self, fresh_engine) -> None:
        pending = list_pending(fresh_engine)
        assert len(pending) == 3
        # Dry run: nothing but the bookkeeping table exists yet.
        assert "users" not in inspect(fresh_engine).get_table_names()

    def test_run_pending_applies_all(self, fresh_engine) -> None:
        applied = run_pending(fresh_engine)
        assert [m.name for m in applied] == [m.name for m in discover()]
        tables = set(inspect(fresh_engine).get_table_names())
        assert {"users", "sessions", "user_activation_tokens", "schema_migrations"} <= tables

    def test_run_pending_is_idempotent(self, fresh_engine) -> None:
        run_pending(fresh_engine)
        assert run_pending(fresh_engine) == []
        assert list_pending(fresh_engine) == []

    def test_users_unique_case_insensitively(self, fresh_engine) -> None:
        run_pending(fresh_engine)
        insert = text(
            "INSERT INTO users (id, username, email, password, features, created_at, updated_at) "
            "VALUES (:id, :username, :email, 'x', '[]', 'now', 'now')"
        )
        with fresh_engine.begin() as conn:
            conn.execute(insert, {"id": "1", "username": "Alice", "email": "a@example.com"})
        with pytest.raises(IntegrityError):
            with fresh_engine.begin() as conn:
                conn.execute(insert, {"id": "2", "username": "alice", "email": "b@example.com"})
