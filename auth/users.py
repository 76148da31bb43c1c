"""
auth/users.py -- User account service.

Thin layer over IdentityStore that turns "no row" into NotFoundError, hashes
passwords on the way in and reports uniqueness conflicts as ValidationError.
The "already in use" message is the one place the API confirms that an e-mail
or username exists; registration cannot work without it.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.features import AVAILABLE_FEATURES, DEFAULT_USER_FEATURES
from auth.models import User
from auth.store import IdentityStore
from auth.tokens import hash_password
from core.errors import NotFoundError, ValidationError

logger = logging.getLogger("bonsai.auth")

_USER_NOT_FOUND = "The username provided was not found in the system."
_USER_NOT_FOUND_ACTION = "Check that the username is spelled correctly."


def create(store: IdentityStore, username: str, email: str, password: str) -> User:
    """Register a new user holding only DEFAULT_USER_FEATURES."""
    _ensure_unique(store, username=username, email=email)
    user = User(
        username=username,
        email=email,
        password=hash_password(password),
        features=list(DEFAULT_USER_FEATURES),
    )
    try:
        created = store.create_user(user)
    except IntegrityError as exc:
        # Lost a registration race after the pre-check passed.
        raise ValidationError(
            message="The email or username provided is already in use.",
            action="Use another email or username to perform this operation.",
        ) from exc
    logger.info("User %s registered", created.id)
    return created


def find_by_id(store: IdentityStore, user_id: str) -> User:
    user = store.get_user_by_id(user_id)
    if user is None:
        raise NotFoundError(message="The user id provided was not found in the system.")
    return user


def find_by_username(store: IdentityStore, username: str) -> User:
    user = store.get_user_by_username(username)
    if user is None:
        raise NotFoundError(message=_USER_NOT_FOUND, action=_USER_NOT_FOUND_ACTION)
    return user


def find_by_email(store: IdentityStore, email: str) -> User:
    user = store.get_user_by_email(email)
    if user is None:
        raise NotFoundError(
            message="The email provided was not found in the system.",
            action="Check that the email is spelled correctly.",
        )
    return user


def update(store: IdentityStore, current_username: str, /, **fields) -> User:
    """Update username / email / password of the user currently named current_username.

    None values are ignored. A new password is hashed before it is stored.
    Changing a field to the value the user already holds (any casing) is
    not a conflict.
    """
    current = find_by_username(store, current_username)
    changes = {name: value for name, value in fields.items() if value is not None}

    if "username" in changes and changes["username"].lower() != current.username.lower():
        _ensure_unique(store, username=changes["username"])
    if "email" in changes and changes["email"].lower() != current.email.lower():
        _ensure_unique(store, email=changes["email"])
    if "password" in changes:
        changes["password"] = hash_password(changes["password"])

    if not changes:
        return current

    try:
        updated = store.update_user(current.id, **changes)
    except IntegrityError as exc:
        raise ValidationError(
            message="The email or username provided is already in use.",
            action="Use another email or username to perform this operation.",
        ) from exc
    if updated is None:
        raise NotFoundError(message=_USER_NOT_FOUND, action=_USER_NOT_FOUND_ACTION)
    return updated


def set_features(store: IdentityStore, user_id: str, features: list[str]) -> User:
    """Replace the feature list of user_id. Every entry must be in the catalog."""
    _validate_features(features)
    updated = store.update_user(user_id, features=sorted(set(features)))
    if updated is None:
        raise NotFoundError(message="The user id provided was not found in the system.")
    logger.info("Features of user %s set to %s", user_id, updated.features)
    return updated


def add_features(store: IdentityStore, user_id: str, features: list[str]) -> User:
    """Grant features to user_id on top of the ones it already holds."""
    _validate_features(features)
    current = find_by_id(store, user_id)
    return set_features(store, user_id, list(current.features) + list(features))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ensure_unique(store: IdentityStore, username: str | None = None, email: str | None = None) -> None:
    if username is not None and store.get_user_by_username(username) is not None:
        raise ValidationError(
            message="The username provided is already in use.",
            action="Use another username to perform this operation.",
        )
    if email is not None and store.get_user_by_email(email) is not None:
        raise ValidationError(
            message="The email provided is already in use.",
            action="Use another email to perform this operation.",
        )


def _validate_features(features: list[str]) -> None:
    unknown = sorted(set(features) - AVAILABLE_FEATURES)
    if unknown:
        raise ValidationError(
            message=f"Unknown features: {', '.join(unknown)}.",
            action="Use only features from the catalog.",
        )
