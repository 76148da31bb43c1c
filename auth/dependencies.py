"""
auth/dependencies.py -- FastAPI Depends() helpers for caller identity and gating.

Caller identity comes from the session_id cookie only:
  - no cookie                    -> AnonymousUser (ANONYMOUS_FEATURES)
  - cookie resolving to a valid  -> the session owner; the session is renewed
    session                         and the refreshed cookie is written on the
                                    response
  - cookie that does not resolve -> UnauthorizedError (401). api/main.py clears
                                    the stale cookie when rendering the error.

get_caller() is the soft variant every route can use (anonymous is allowed).
can_request(feature) wraps it and raises ForbiddenError when the caller lacks
feature. get_active_session() requires a real session (logout).

Layer rule: auth/dependencies.py may import from fastapi (for Request,
Response, Depends) because this module is part of the FastAPI dependency
injection system. It does not import from api/.
"""

from __future__ import annotations

from fastapi import Depends, Request, Response

from auth import sessions, users
from auth.authorization import can
from auth.features import Feature, feature_value
from auth.models import AnonymousUser, Session, User
from auth.store import IdentityStore
from auth.tokens import SESSION_COOKIE_NAME, set_session_cookie
from core.errors import ForbiddenError, NotFoundError, UnauthorizedError


def get_store(request: Request) -> IdentityStore:
    return request.app.state.store


def get_caller(request: Request, response: Response) -> User | AnonymousUser:
    """Resolve the caller of this request from the session cookie.

    Use as a FastAPI dependency:
        @router.get("/route")
        def route(caller: User | AnonymousUser = Depends(get_caller)): ...
    """
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return AnonymousUser()

    store = get_store(request)
    try:
        session = sessions.find_valid_by_token(store, token)
        session = sessions.renew(store, session.id)
        user = users.find_by_id(store, session.user_id)
    except NotFoundError as exc:
        request.state.stale_session_cookie = True
        raise UnauthorizedError(
            message="User does not have an active session.",
            action="Check that this user is logged in and try again.",
        ) from exc

    set_session_cookie(response, session.token)
    request.state.session = session
    return user


def can_request(feature: Feature):
    """Return a dependency that admits only callers holding feature.

    Use as a FastAPI dependency:
        @router.get("/migrations")
        def route(caller = Depends(can_request(Feature.READ_MIGRATION))): ...
    """

    def dependency(caller: User | AnonymousUser = Depends(get_caller)) -> User | AnonymousUser:
        if not can(caller, feature):
            raise ForbiddenError(
                message="You do not have permission to perform this action.",
                action=f'Check that your user has the feature "{feature_value(feature)}".',
            )
        return caller

    return dependency


def get_active_session(
    request: Request,
    caller: User | AnonymousUser = Depends(get_caller),
) -> Session:
    """Require a resolved session cookie. Raises UnauthorizedError otherwise."""
    session: Session | None = getattr(request.state, "session", None)
    if session is None:
        raise UnauthorizedError(
            message="User does not have an active session.",
            action="Check that this user is logged in and try again.",
        )
    return session
