"""
auth/store.py -- SQLAlchemy Core persistence layer for identity entities.

Pattern: Repository + Data Mapper. IdentityStore is the repository;
_row_to_user / _row_to_session / _row_to_activation_token are the mappers.
Services never touch SQL directly, and this module never raises domain
errors: "no row" is returned as None and the service layer decides what
that means (NotFoundError, UnauthorizedError, ...).

Security:
  All queries use bound parameters. No f-strings in SQL.

Atomicity:
  Every method issues exactly one statement per write. State transitions that
  must happen at most once are conditional UPDATE ... WHERE <predicate still
  holds> RETURNING *, so the database is the only serialization point:
    - mark_activation_token_used(): WHERE used_at IS NULL AND expires_at > now.
      Of N concurrent callers exactly one gets a row back.
    - renew_session() / expire_session(): WHERE expires_at > now, so an
      expired or revoked session can never be revived.

Clock:
  The store owns the notion of "now" (self.clock) so validity predicates,
  created_at/updated_at stamps and the expiry math in the services all read
  the same clock. Tests inject a fake clock to simulate expiry.

Schema:
  Created by the migrations in core/migrations/. The Table objects below only
  describe the columns for query building.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import Column, MetaData, String, Table, Text, func
from sqlalchemy.engine import Engine

from auth.models import ActivationToken, Session, User
from core.database import from_iso, to_iso, utcnow

logger = logging.getLogger("bonsai.store")

# ---------------------------------------------------------------------------
# Schema (query-side description; DDL lives in core/migrations/)
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("username", String(30), nullable=False),
    Column("email", String(254), nullable=False),
    Column("password", String(72), nullable=False),
    Column("features", Text, nullable=False),  # JSON array
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_sessions = Table(
    "sessions",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("token", String(96), nullable=False, unique=True),
    Column("user_id", String(36), nullable=False),
    Column("expires_at", String(32), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_activation_tokens = Table(
    "user_activation_tokens",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), nullable=False),
    Column("used_at", String(32)),
    Column("expires_at", String(32), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Columns mutable through update_user(). Validated before any SQL is built.
_USER_MUTABLE_FIELDS = {"username", "email", "password", "features"}


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class IdentityStore:
    """Repository for User, Session and ActivationToken entities.

    Usage:
        engine = create_db_engine("sqlite:///bonsai.db")
        store = IdentityStore(engine)
        user = store.create_user(User(username="bonsai", email="b@x.com", password=hash_password("pw")))
        store.get_user_by_email("B@X.com")
    """

    def __init__(self, engine: Engine, clock: Callable[[], datetime] = utcnow) -> None:
        self.engine = engine
        self.clock = clock

    def _now_iso(self) -> str:
        return to_iso(self.clock())

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a new user and return it with id and timestamps filled in.

        Raises sqlalchemy.exc.IntegrityError if the username or e-mail already
        exists (case-insensitively, via the lower() unique indexes). Callers
        should pre-check for a friendly message and still catch IntegrityError
        for the concurrent-registration race.
        """
        now = self._now_iso()
        values = {
            "id": str(uuid.uuid4()),
            "username": user.username,
            "email": user.email,
            "password": user.password,
            "features": json.dumps(list(user.features)),
            "created_at": now,
            "updated_at": now,
        }
        with self.engine.connect() as conn:
            conn.execute(_users.insert().values(**values))
            conn.commit()
        return User(
            id=values["id"],
            username=user.username,
            email=user.email,
            password=user.password,
            features=list(user.features),
            created_at=from_iso(now),
            updated_at=from_iso(now),
        )

    def get_user_by_id(self, user_id: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_user_by_username(self, username: str) -> User | None:
        """Case-insensitive username lookup. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where(func.lower(_users.c.username) == username.lower()).limit(1)
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_user_by_email(self, email: str) -> User | None:
        """Case-insensitive e-mail lookup. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where(func.lower(_users.c.email) == email.lower()).limit(1)
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_user(self, user_id: str, **fields) -> User | None:
        """Update mutable fields on an existing user and return the new row.

        Accepted fields: username, email, password (already hashed), features
        (list[str]; serialized to JSON here). Unknown keys raise ValueError
        rather than being silently ignored.

        Returns None if user_id was not found. Raises IntegrityError on a
        username / e-mail collision.
        """
        unknown = set(fields) - _USER_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if "features" in fields:
            fields["features"] = json.dumps(list(fields["features"]))
        fields["updated_at"] = self._now_iso()
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.update().where(_users.c.id == user_id).values(**fields).returning(*_users.c)
            ).first()
            conn.commit()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, user_id: str, token: str, expires_at: datetime) -> Session:
        now = self._now_iso()
        values = {
            "id": str(uuid.uuid4()),
            "token": token,
            "user_id": user_id,
            "expires_at": to_iso(expires_at),
            "created_at": now,
            "updated_at": now,
        }
        with self.engine.connect() as conn:
            conn.execute(_sessions.insert().values(**values))
            conn.commit()
        return _row_to_session(_Row(values))

    def get_session_by_id(self, session_id: str) -> Session | None:
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.id == session_id)).fetchone()
        return _row_to_session(row) if row is not None else None

    def get_valid_session_by_token(self, token: str) -> Session | None:
        """Return the session for token if it has not expired, else None."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _sessions.select()
                .where((_sessions.c.token == token) & (_sessions.c.expires_at > self._now_iso()))
                .limit(1)
            ).fetchone()
        return _row_to_session(row) if row is not None else None

    def renew_session(self, session_id: str, expires_at: datetime, token: str | None = None) -> Session | None:
        """Slide expires_at (and optionally rotate the token) of a still-valid session.

        Returns None if the session does not exist or has already expired.
        """
        now = self._now_iso()
        values = {"expires_at": to_iso(expires_at), "updated_at": now}
        if token is not None:
            values["token"] = token
        with self.engine.connect() as conn:
            row = conn.execute(
                _sessions.update()
                .where((_sessions.c.id == session_id) & (_sessions.c.expires_at > now))
                .values(**values)
                .returning(*_sessions.c)
            ).first()
            conn.commit()
        if row is None:
            logger.debug("Session %s not renewed: unknown or expired", session_id)
        return _row_to_session(row) if row is not None else None

    def expire_session(self, session_id: str) -> Session | None:
        """Revoke a still-valid session by moving expires_at to now."""
        now = self._now_iso()
        with self.engine.connect() as conn:
            row = conn.execute(
                _sessions.update()
                .where((_sessions.c.id == session_id) & (_sessions.c.expires_at > now))
                .values(expires_at=now, updated_at=now)
                .returning(*_sessions.c)
            ).first()
            conn.commit()
        return _row_to_session(row) if row is not None else None

    # ------------------------------------------------------------------
    # Activation tokens
    # ------------------------------------------------------------------

    def create_activation_token(self, user_id: str, expires_at: datetime) -> ActivationToken:
        now = self._now_iso()
        values = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "used_at": None,
            "expires_at": to_iso(expires_at),
            "created_at": now,
            "updated_at": now,
        }
        with self.engine.connect() as conn:
            conn.execute(_activation_tokens.insert().values(**values))
            conn.commit()
        return _row_to_activation_token(_Row(values))

    def get_valid_activation_token(self, token_id: str) -> ActivationToken | None:
        """Return the token if it is unused and unexpired, else None."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _activation_tokens.select()
                .where(
                    (_activation_tokens.c.id == token_id)
                    & (_activation_tokens.c.used_at.is_(None))
                    & (_activation_tokens.c.expires_at > self._now_iso())
                )
                .limit(1)
            ).fetchone()
        return _row_to_activation_token(row) if row is not None else None

    def mark_activation_token_used(self, token_id: str) -> ActivationToken | None:
        """Atomically set used_at on an unused, unexpired token.

        Compare-and-swap: the WHERE clause re-checks used_at IS NULL inside
        the UPDATE itself, so when several requests race on one token only
        the first write matches a row. Everyone else gets None.
        """
        now = self._now_iso()
        with self.engine.connect() as conn:
            # first() closes the RETURNING cursor so the commit below is not blocked by it.
            row = conn.execute(
                _activation_tokens.update()
                .where(
                    (_activation_tokens.c.id == token_id)
                    & (_activation_tokens.c.used_at.is_(None))
                    & (_activation_tokens.c.expires_at > now)
                )
                .values(used_at=now, updated_at=now)
                .returning(*_activation_tokens.c)
            ).first()
            conn.commit()
        if row is None:
            logger.debug("Activation token %s not consumed: unknown, used or expired", token_id)
            return None
        logger.info("Activation token %s consumed", token_id)
        return _row_to_activation_token(row)

    def close(self) -> None:
        self.engine.dispose()
        logger.info("Identity store closed")


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


class _Row:
    """Attribute view over a values dict, so freshly inserted rows reuse the mappers."""

    def __init__(self, values: dict) -> None:
        self.__dict__.update(values)


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        password=row.password,
        features=json.loads(row.features or "[]"),
        created_at=from_iso(row.created_at),
        updated_at=from_iso(row.updated_at),
    )


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        token=row.token,
        user_id=row.user_id,
        expires_at=from_iso(row.expires_at),
        created_at=from_iso(row.created_at),
        updated_at=from_iso(row.updated_at),
    )


def _row_to_activation_token(row) -> ActivationToken:
    return ActivationToken(
        id=row.id,
        user_id=row.user_id,
        used_at=from_iso(row.used_at),
        expires_at=from_iso(row.expires_at),
        created_at=from_iso(row.created_at),
        updated_at=from_iso(row.updated_at),
    )
