"""
tests/test_users.py -- Tests for the user account service and its store queries.

Covers:
  - create(): default features, bcrypt-hashed password, UUID4 id, timestamps
  - uniqueness of username and e-mail, case-insensitively, as ValidationError
  - case-insensitive lookups that preserve the registered casing
  - update(): partial updates, password re-hash, same-value renames, conflicts
  - set_features() / add_features(): catalog validation, idempotent grants
"""

from __future__ import annotations

import uuid

import pytest

from auth import users
from auth.tokens import verify_password
from core.errors import NotFoundError, ValidationError


class TestCreate:
    def test_create_defaults(self, store, clock) -> None:
        user = users.create(store, "Alice", "alice@example.com", "correct-horse")
        assert uuid.UUID(user.id).version == 4
        assert user.features == ["read:activation_token"]
        assert user.created_at == user.updated_at == clock()

    def test_password_is_hashed(self, store) -> None:
        user = users.create(store, "alice", "alice@example.com", "correct-horse")
        assert user.password != "correct-horse"
        assert user.password.startswith("$2")
        assert verify_password("correct-horse", user.password)

    def test_duplicate_username_any_case(self, store, make_user) -> None:
        make_user("UsernameTaken")
        with pytest.raises(ValidationError) as exc_info:
            users.create(store, "usernametaken", "other@example.com", "correct-horse")
        assert exc_info.value.message == "The username provided is already in use."

    def test_duplicate_email_any_case(self, store, make_user) -> None:
        make_user("first", email="shared@example.com")
        with pytest.raises(ValidationError) as exc_info:
            users.create(store, "second", "SHARED@example.com", "correct-horse")
        assert exc_info.value.message == "The email provided is already in use."


class TestFind:
    def test_find_by_username_preserves_case(self, store, make_user) -> None:
        make_user("MixedCase")
        found = users.find_by_username(store, "mixedcase")
        assert found.username == "MixedCase"

    def test_find_by_username_missing(self, store) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            users.find_by_username(store, "ghost")
        assert exc_info.value.message == "The username provided was not found in the system."

    def test_find_by_email(self, store, make_user) -> None:
        created = make_user("alice", email="Alice@Example.com")
        assert users.find_by_email(store, "alice@example.com").id == created.id

    def test_find_by_id_missing(self, store) -> None:
        with pytest.raises(NotFoundError):
            users.find_by_id(store, str(uuid.uuid4()))


class TestUpdate:
    def test_update_username(self, store, clock, make_user) -> None:
        user = make_user("alice")
        clock.advance(minutes=5)
        updated = users.update(store, "alice", username="alicia")
        assert updated.id == user.id
        assert updated.username == "alicia"
        assert updated.updated_at > user.updated_at
        assert updated.created_at == user.created_at

    def test_update_password_rehashes(self, store, make_user) -> None:
        user = make_user("alice")
        updated = users.update(store, "alice", password="new-password")
        assert updated.password != user.password
        assert verify_password("new-password", updated.password)

    def test_update_to_own_name_in_other_case(self, store, make_user) -> None:
        make_user("alice")
        updated = users.update(store, "alice", username="ALICE")
        assert updated.username == "ALICE"

    def test_update_to_taken_username(self, store, make_user) -> None:
        make_user("alice")
        make_user("bob")
        with pytest.raises(ValidationError):
            users.update(store, "bob", username="Alice")

    def test_update_to_taken_email(self, store, make_user) -> None:
        make_user("alice", email="alice@example.com")
        make_user("bob", email="bob@example.com")
        with pytest.raises(ValidationError) as exc_info:
            users.update(store, "bob", email="alice@example.com")
        assert exc_info.value.message == "The email provided is already in use."

    def test_update_without_changes_returns_current(self, store, make_user) -> None:
        user = make_user("alice")
        assert users.update(store, "alice", username=None).id == user.id

    def test_update_every_field_at_once(self, store, make_user) -> None:
        user = make_user("alice")
        updated = users.update(
            store, "alice", username="alicia", email="alicia@example.com", password="new-password"
        )
        assert users.find_by_username(store, "alicia").id == user.id
        assert updated.email == "alicia@example.com"
        assert verify_password("new-password", updated.password)
        with pytest.raises(NotFoundError):
            users.find_by_username(store, "alice")

    def test_update_missing_user(self, store) -> None:
        with pytest.raises(NotFoundError):
            users.update(store, "ghost", username="someone")


class TestFeatures:
    def test_set_features(self, store, make_user) -> None:
        user = make_user("alice")
        updated = users.set_features(store, user.id, ["read:session", "create:session"])
        assert updated.features == ["create:session", "read:session"]

    def test_add_features_is_idempotent(self, store, make_user) -> None:
        user = make_user("alice", features=["create:session"])
        users.add_features(store, user.id, ["read:migration"])
        updated = users.add_features(store, user.id, ["read:migration", "create:session"])
        assert updated.features == ["create:session", "read:migration"]

    def test_unknown_feature_rejected(self, store, make_user) -> None:
        user = make_user("alice")
        with pytest.raises(ValidationError):
            users.add_features(store, user.id, ["root:everything"])
        assert users.find_by_id(store, user.id).features == ["read:activation_token"]

    def test_set_features_missing_user(self, store) -> None:
        with pytest.raises(NotFoundError):
            users.set_features(store, str(uuid.uuid4()), ["read:session"])
