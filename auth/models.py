"""
auth/models.py -- Domain dataclasses for identity entities.

Pattern: Data class (pure data container, zero logic). Stores map rows into
these; services and routes do the work. Timestamps are timezone-aware UTC
datetimes (core.database.to_iso / from_iso handle persistence).

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from auth.features import ANONYMOUS_FEATURES


@dataclass
class User:
    """A registered identity.

    password holds the bcrypt hash and must never leave the service -- every
    outbound representation goes through auth.authorization.filter_output(),
    which has no projection that includes it.

    username and email are unique case-insensitively; the stored value keeps
    the casing the user registered with.
    """

    username: str
    email: str
    password: str
    features: list[str] = field(default_factory=list)
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Session:
    """An authenticated browsing context, carried in the session_id cookie.

    Valid while expires_at is in the future. Each authenticated request slides
    expires_at forward (auth.sessions.renew); logout sets it to now.
    """

    token: str
    user_id: str
    expires_at: datetime
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class ActivationToken:
    """Single-use, time-limited credential that promotes a new user's features.

    id is the secret delivered by e-mail. used_at moves from None to a
    timestamp exactly once; after that the token never validates again.
    """

    user_id: str
    expires_at: datetime
    used_at: datetime | None = None
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class AnonymousUser:
    """Caller identity for a request that carries no session cookie."""

    id: None = None
    features: list[str] = field(default_factory=lambda: list(ANONYMOUS_FEATURES))
