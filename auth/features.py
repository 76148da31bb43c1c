"""
auth/features.py -- The closed catalog of features (permission grants).

A user's permissions are a flat list of these strings, persisted as-is in
users.features and echoed in authorization error messages, so the string
values are part of the external contract. Referencing a string outside this
enum is a programmer error (see auth/authorization.py).

Layer rule: no imports from api/.
"""

from __future__ import annotations

from enum import Enum


class Feature(str, Enum):
    # User
    CREATE_USER = "create:user"
    READ_USER = "read:user"
    READ_USER_SELF = "read:user:self"
    UPDATE_USER = "update:user"
    UPDATE_USER_OTHERS = "update:user:others"

    # Session
    CREATE_SESSION = "create:session"
    READ_SESSION = "read:session"
    DELETE_SESSION = "delete:session"

    # Activation token
    READ_ACTIVATION_TOKEN = "read:activation_token"

    # Migration
    CREATE_MIGRATION = "create:migration"
    READ_MIGRATION = "read:migration"

    # Status
    READ_STATUS = "read:status"
    READ_STATUS_ALL = "read:status:all"


AVAILABLE_FEATURES: frozenset[str] = frozenset(f.value for f in Feature)

# Granted at registration: the account can only consume its activation token.
DEFAULT_USER_FEATURES: tuple[str, ...] = (Feature.READ_ACTIVATION_TOKEN.value,)

# Replaces DEFAULT_USER_FEATURES once the activation token is consumed.
ACTIVATED_USER_FEATURES: tuple[str, ...] = (
    Feature.CREATE_SESSION.value,
    Feature.READ_SESSION.value,
)

# Held by a request without a session cookie.
ANONYMOUS_FEATURES: tuple[str, ...] = (
    Feature.READ_ACTIVATION_TOKEN.value,
    Feature.CREATE_SESSION.value,
    Feature.CREATE_USER.value,
)


def feature_value(feature: object) -> str | None:
    """Return the catalog string for a Feature member or plain string, None if unknown."""
    value = feature.value if isinstance(feature, Feature) else feature
    return value if isinstance(value, str) and value in AVAILABLE_FEATURES else None
