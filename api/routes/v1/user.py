"""
api/routes/v1/user.py -- The current user, resolved from the session cookie.

Routes:
  GET /api/v1/user   -- the caller's own profile, including e-mail

Responses are marked no-store: they carry personal data and the renewed
session cookie, neither of which an intermediary cache should keep.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from api.models import UserSelfResponse
from auth.authorization import filter_output
from auth.dependencies import can_request
from auth.features import Feature
from auth.models import User

router = APIRouter()


@router.get("/user", response_model=UserSelfResponse)
def get_current_user(
    response: Response,
    caller: User = Depends(can_request(Feature.READ_SESSION)),
) -> dict:
    response.headers["Cache-Control"] = "no-store, no-cache, max-age=0, must-revalidate"
    return filter_output(caller, Feature.READ_USER_SELF, caller)
