"""
tests/test_sessions.py -- Tests for the session lifecycle.

Covers:
  - create(): 96 hex character token, 30 day lifetime on the store clock
  - find_valid_by_token(): valid, expired and unknown tokens
  - renew(): slides expiry forward, strictly increases even with a frozen
    clock, never revives expired or revoked sessions, optional token rotation
  - expire(): logout makes the session permanently invalid
"""

from __future__ import annotations

import re
from datetime import timedelta

import pytest

import auth.sessions as sessions_module
from auth import sessions
from core.config import Settings
from core.errors import NotFoundError

_THIRTY_DAYS = timedelta(days=30)


class TestCreateAndFind:
    def test_create(self, store, clock, make_user) -> None:
        user = make_user("alice")
        session = sessions.create(store, user.id)
        assert session.user_id == user.id
        assert re.fullmatch(r"[0-9a-f]{96}", session.token)
        assert session.expires_at == clock() + _THIRTY_DAYS

    def test_tokens_are_unique(self, store, make_user) -> None:
        user = make_user("alice")
        tokens = {sessions.create(store, user.id).token for _ in range(5)}
        assert len(tokens) == 5

    def test_find_valid_by_token(self, store, make_user) -> None:
        session = sessions.create(store, make_user("alice").id)
        found = sessions.find_valid_by_token(store, session.token)
        assert found.id == session.id

    def test_unknown_token(self, store) -> None:
        with pytest.raises(NotFoundError):
            sessions.find_valid_by_token(store, "0" * 96)

    def test_expired_session(self, store, clock, make_user) -> None:
        session = sessions.create(store, make_user("alice").id)
        clock.advance(days=30)
        with pytest.raises(NotFoundError):
            sessions.find_valid_by_token(store, session.token)


class TestRenew:
    def test_renew_slides_expiry(self, store, clock, make_user) -> None:
        session = sessions.create(store, make_user("alice").id)
        clock.advance(days=10)
        renewed = sessions.renew(store, session.id)
        assert renewed.id == session.id
        assert renewed.token == session.token
        assert renewed.expires_at == clock() + _THIRTY_DAYS
        assert renewed.expires_at > session.expires_at

    def test_renew_strictly_increases_with_frozen_clock(self, store, make_user) -> None:
        session = sessions.create(store, make_user("alice").id)
        first = sessions.renew(store, session.id)
        second = sessions.renew(store, session.id)
        assert session.expires_at < first.expires_at < second.expires_at

    def test_renew_does_not_revive_expired_session(self, store, clock, make_user) -> None:
        session = sessions.create(store, make_user("alice").id)
        clock.advance(days=31)
        with pytest.raises(NotFoundError):
            sessions.renew(store, session.id)
        assert store.get_session_by_id(session.id).expires_at == session.expires_at

    def test_renew_unknown_session(self, store) -> None:
        with pytest.raises(NotFoundError):
            sessions.renew(store, "00000000-0000-4000-8000-000000000000")

    def test_renew_rotates_token_when_enabled(self, store, make_user, monkeypatch) -> None:
        session = sessions.create(store, make_user("alice").id)
        rotating = Settings(debug=True, session_rotate_on_renew=True)
        monkeypatch.setattr(sessions_module, "get_settings", lambda: rotating)

        renewed = sessions.renew(store, session.id)

        assert renewed.token != session.token
        assert sessions.find_valid_by_token(store, renewed.token).id == session.id
        with pytest.raises(NotFoundError):
            sessions.find_valid_by_token(store, session.token)


class TestExpire:
    def test_expire_revokes(self, store, clock, make_user) -> None:
        session = sessions.create(store, make_user("alice").id)
        expired = sessions.expire(store, session.id)
        assert expired.expires_at == clock()
        with pytest.raises(NotFoundError):
            sessions.find_valid_by_token(store, session.token)

    def test_expired_session_cannot_be_renewed(self, store, make_user) -> None:
        session = sessions.create(store, make_user("alice").id)
        sessions.expire(store, session.id)
        with pytest.raises(NotFoundError):
            sessions.renew(store, session.id)

    def test_expire_twice(self, store, make_user) -> None:
        session = sessions.create(store, make_user("alice").id)
        sessions.expire(store, session.id)
        with pytest.raises(NotFoundError):
            sessions.expire(store, session.id)
