"""
auth/authorization.py -- Feature-based authorization and output redaction.

Two pure functions, no I/O and no state:

  can(caller, feature, resource=None) -> bool
      Membership test of feature in caller.features, with one override: for
      update:user with a known target resource, the blanket grant is ignored
      and the caller must either be the target or hold update:user:others.

  filter_output(caller, feature, output) -> dict | list | None
      Projects a raw entity down to the fields the feature exposes to this
      caller. No projection includes the password hash.

Callers, resources and outputs may be dataclasses (auth.models) or plain
mappings. Violated preconditions raise InternalServerError: they mean the
calling code is wrong, not that the end user lacks permission.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from typing import Any

from auth.features import Feature, feature_value
from core.errors import InternalServerError

_USER_PUBLIC_FIELDS = ("id", "username", "features", "created_at", "updated_at")
_USER_SELF_FIELDS = ("id", "username", "email", "features", "created_at", "updated_at")
_SESSION_FIELDS = ("id", "token", "user_id", "expires_at", "created_at", "updated_at")
_ACTIVATION_TOKEN_FIELDS = ("id", "user_id", "used_at", "expires_at", "created_at", "updated_at")
_MIGRATION_FIELDS = ("path", "name", "timestamp")

_USER_PUBLIC_FEATURES = {
    Feature.CREATE_USER.value,
    Feature.READ_USER.value,
    Feature.UPDATE_USER.value,
    Feature.UPDATE_USER_OTHERS.value,
}
_SESSION_FEATURES = {
    Feature.CREATE_SESSION.value,
    Feature.READ_SESSION.value,
    Feature.DELETE_SESSION.value,
}
_MIGRATION_FEATURES = {Feature.READ_MIGRATION.value, Feature.CREATE_MIGRATION.value}
_STATUS_FEATURES = {Feature.READ_STATUS.value, Feature.READ_STATUS_ALL.value}


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------


def can(caller: Any, feature: Feature | str, resource: Any = None) -> bool:
    """Return True if caller may use feature (on resource, when given)."""
    features = _validate_caller(caller)
    name = _validate_feature(feature)

    authorized = name in features

    if name == Feature.UPDATE_USER.value and resource is not None:
        caller_id = _get(caller, "id")
        authorized = (caller_id is not None and caller_id == _get(resource, "id")) or can(
            caller, Feature.UPDATE_USER_OTHERS
        )

    return authorized


def filter_output(caller: Any, feature: Feature | str, output: Any) -> Any:
    """Return the subset of output that feature exposes to caller.

    Owner-scoped projections (read:user:self, session features) return None
    when the caller does not own the entity. Lists are projected item by item,
    order preserved.
    """
    _validate_caller(caller)
    name = _validate_feature(feature)
    if output is None:
        raise InternalServerError(cause="filter_output() requires an output to filter.")

    if name in _MIGRATION_FEATURES:
        return [_pick(migration, _MIGRATION_FIELDS) for migration in output]

    if name in _STATUS_FEATURES:
        return _filter_status(caller, output)

    if isinstance(output, (list, tuple)):
        return [_filter_entity(caller, name, item) for item in output]
    return _filter_entity(caller, name, output)


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------


def _filter_entity(caller: Any, name: str, output: Any) -> dict | None:
    if name in _USER_PUBLIC_FEATURES:
        return _pick(output, _USER_PUBLIC_FIELDS)

    if name == Feature.READ_USER_SELF.value:
        if _is_same_identity(caller, _get(output, "id")):
            return _pick(output, _USER_SELF_FIELDS)
        return None

    if name in _SESSION_FEATURES:
        if _is_same_identity(caller, _get(output, "user_id")):
            return _pick(output, _SESSION_FIELDS)
        return None

    if name == Feature.READ_ACTIVATION_TOKEN.value:
        return _pick(output, _ACTIVATION_TOKEN_FIELDS)

    raise InternalServerError(cause=f"filter_output() has no projection for feature {name!r}.")


def _filter_status(caller: Any, output: Any) -> dict:
    database = _get(_get(output, "dependencies") or {}, "database") or {}
    filtered_database = {
        "max_connections": _get(database, "max_connections"),
        "opened_connections": _get(database, "opened_connections"),
    }
    if can(caller, Feature.READ_STATUS_ALL):
        filtered_database["version"] = _get(database, "version")
    return {
        "updated_at": _get(output, "updated_at"),
        "dependencies": {"database": filtered_database},
    }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _pick(obj: Any, fields: tuple[str, ...]) -> dict:
    source = asdict(obj) if is_dataclass(obj) and not isinstance(obj, type) else obj
    return {name: _get(source, name) for name in fields}


def _is_same_identity(caller: Any, owner_id: Any) -> bool:
    caller_id = _get(caller, "id")
    return caller_id is not None and caller_id == owner_id


def _validate_caller(caller: Any) -> list[str]:
    features = _get(caller, "features") if caller is not None else None
    if features is None:
        raise InternalServerError(cause="Authorization requires a caller carrying a features list.")
    return [feature_value(f) or f for f in features]


def _validate_feature(feature: Any) -> str:
    name = feature_value(feature)
    if name is None:
        raise InternalServerError(cause=f"Authorization requires a known feature, got {feature!r}.")
    return name
