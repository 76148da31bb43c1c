"""
api/routes/v1/sessions.py -- Login and logout.

Routes:
  POST   /api/v1/sessions   -- e-mail + password login; sets session_id cookie; 201
  DELETE /api/v1/sessions   -- logout; expires the session and clears the cookie

Security:
  POST is rate-limited per client IP (LOGIN_RATE_LIMIT, default 10/minute).
  get_authenticated_user() equalizes timing and answers wrong e-mail and
  wrong password identically -- use it, never inline the lookup.
  An account that has not been activated yet authenticates but lacks
  create:session and is refused with 403.
  Cache-Control: no-store on login responses (they carry the session token).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter
from api.models import SessionCreate, SessionResponse
from auth import sessions
from auth.authentication import get_authenticated_user
from auth.authorization import can, filter_output
from auth.dependencies import can_request, get_active_session, get_caller, get_store
from auth.features import Feature
from auth.models import AnonymousUser, Session, User
from auth.tokens import clear_session_cookie, set_session_cookie
from core.config import get_settings
from core.errors import ForbiddenError

# Auth policy:
# - POST   /api/v1/sessions:  create:session (anonymous or activated users)
# - DELETE /api/v1/sessions:  requires a resolved session cookie
router = APIRouter()


def _login_rate_limit() -> str:
    return get_settings().login_rate_limit


# @limiter.limit goes under @router so the route registers the limiter wrapper, where
# slowapi checks per-route limits. SlowAPIMiddleware only applies default limits.
@router.post("/sessions", response_model=SessionResponse, status_code=201)
@limiter.limit(_login_rate_limit)
def create_session(
    request: Request,
    response: Response,
    body: SessionCreate,
    caller: User | AnonymousUser = Depends(can_request(Feature.CREATE_SESSION)),
) -> dict:
    """Authenticate with e-mail and password; open a session and set its cookie."""
    store = get_store(request)
    user = get_authenticated_user(store, body.email, body.password)
    if not can(user, Feature.CREATE_SESSION):
        raise ForbiddenError(
            message="You do not have permission to log in.",
            action="Activate your account using the link sent to your e-mail.",
        )

    session = sessions.create(store, user.id)
    set_session_cookie(response, session.token)
    response.headers["Cache-Control"] = "no-store"
    return filter_output(user, Feature.CREATE_SESSION, session)


@router.delete("/sessions", response_model=SessionResponse)
def delete_session(
    request: Request,
    response: Response,
    caller: User = Depends(get_caller),
    session: Session = Depends(get_active_session),
) -> dict:
    """Expire the caller's session and clear the cookie."""
    expired = sessions.expire(get_store(request), session.id)
    clear_session_cookie(response)
    return filter_output(caller, Feature.DELETE_SESSION, expired)
