"""
auth/sessions.py -- Session lifecycle: create, resolve, renew, expire.

Sessions are opaque random tokens stored server-side. A session is valid
while expires_at is in the future. Every authenticated request renews it
(sliding expiry), and logout expires it on the spot.

Token rotation:
  With SESSION_ROTATE_ON_RENEW=true, renew() also replaces the token, which
  narrows the window for a stolen cookie. It is off by default: a browser
  firing parallel requests with the same cookie would otherwise see all but
  one of them fail.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from auth.models import Session
from auth.store import IdentityStore
from auth.tokens import generate_session_token
from core.config import get_settings
from core.errors import NotFoundError

logger = logging.getLogger("bonsai.auth")

_SESSION_NOT_FOUND = "User does not have an active session."
_SESSION_NOT_FOUND_ACTION = "Check that this user is logged in and try again."


def _ttl() -> timedelta:
    return timedelta(seconds=get_settings().session_expire_seconds)


def create(store: IdentityStore, user_id: str) -> Session:
    session = store.create_session(user_id, generate_session_token(), store.clock() + _ttl())
    logger.info("Session %s created for user %s", session.id, user_id)
    return session


def find_valid_by_token(store: IdentityStore, token: str) -> Session:
    session = store.get_valid_session_by_token(token)
    if session is None:
        raise NotFoundError(message=_SESSION_NOT_FOUND, action=_SESSION_NOT_FOUND_ACTION)
    return session


def renew(store: IdentityStore, session_id: str) -> Session:
    """Slide the expiry of a still-valid session forward.

    The new expires_at is strictly later than the previous one even when two
    renewals land within the clock's resolution. Expired or revoked sessions
    raise NotFoundError and are never revived.
    """
    current = store.get_session_by_id(session_id)
    if current is None:
        raise NotFoundError(message=_SESSION_NOT_FOUND, action=_SESSION_NOT_FOUND_ACTION)

    expires_at = max(store.clock() + _ttl(), current.expires_at + timedelta(microseconds=1))
    token = generate_session_token() if get_settings().session_rotate_on_renew else None

    renewed = store.renew_session(session_id, expires_at, token=token)
    if renewed is None:
        raise NotFoundError(message=_SESSION_NOT_FOUND, action=_SESSION_NOT_FOUND_ACTION)
    return renewed


def expire(store: IdentityStore, session_id: str) -> Session:
    """Revoke session_id immediately (logout)."""
    expired = store.expire_session(session_id)
    if expired is None:
        raise NotFoundError(message=_SESSION_NOT_FOUND, action=_SESSION_NOT_FOUND_ACTION)
    logger.info("Session %s expired", session_id)
    return expired
