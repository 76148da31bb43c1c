"""
core/database.py -- Engine factory, timestamp helpers and database status probe.

Every store and the migrator share one SQLAlchemy Engine built here, so an
in-memory SQLite database (one connection per thread) is seen identically by
the migrator that creates the schema and the store that queries it.

Timestamps: all persisted instants are UTC and serialized with to_iso(), a
fixed-width ISO 8601 format (always microseconds, always +00:00). Fixed width
means lexical order equals chronological order, so validity predicates such
as `expires_at > :now` are plain string comparisons on every backend.

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_db_engine(db_url: str) -> Engine:
    """Build the shared Engine for db_url.

    SQLite requires check_same_thread=False because FastAPI runs sync route
    handlers in a threadpool and pooled connections move between threads.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
        event.listen(engine, "connect", _set_wal_mode)
    return engine


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Serialize an aware datetime as fixed-width UTC ISO 8601."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ---------------------------------------------------------------------------
# Status probe
# ---------------------------------------------------------------------------


def get_status(engine: Engine, now: datetime | None = None) -> dict:
    """Return the raw status entity for GET /api/v1/status.

    The result is unfiltered -- it includes the database version, which only
    callers holding read:status:all may see. Run it through
    auth.authorization.filter_output() before returning it to a client.
    """
    with engine.connect() as conn:
        if engine.dialect.name == "postgresql":
            version = conn.execute(text("SHOW server_version")).scalar()
            max_connections = int(conn.execute(text("SHOW max_connections")).scalar())
            opened_connections = conn.execute(
                text("SELECT COUNT(*)::int FROM pg_stat_activity WHERE datname = current_database()")
            ).scalar()
        else:
            version = conn.execute(text("SELECT sqlite_version()")).scalar()
            max_connections = _pool_capacity(engine.pool)
            opened_connections = _pool_checked_out(engine.pool)
    return {
        "updated_at": to_iso(now or utcnow()),
        "dependencies": {
            "database": {
                "version": str(version),
                "max_connections": max_connections,
                "opened_connections": int(opened_connections or 0),
            }
        },
    }


def _pool_capacity(pool) -> int:
    # QueuePool exposes size() as a method, SingletonThreadPool as an int attribute.
    size = getattr(pool, "size", 1)
    return int(size() if callable(size) else size)


def _pool_checked_out(pool) -> int:
    checkedout = getattr(pool, "checkedout", None)
    return int(checkedout()) if callable(checkedout) else 1
