"""
api/routes/v1/users.py -- Registration and user lookup / update endpoints.

Routes:
  POST  /api/v1/users              -- register; sends the activation e-mail; 201
  GET   /api/v1/users/{username}   -- public profile (case-insensitive lookup)
  PATCH /api/v1/users/{username}   -- update username / email / password

Security:
  Registration needs create:user, which only anonymous callers hold, so a
  logged-in user cannot register another account.
  PATCH is gated twice: update:user to reach the route, then a resource check
  (self, or update:user:others) against the target user.
  Every response passes through filter_output(); the password hash is never
  part of any projection.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import UserCreate, UserPatch, UserResponse, UserSelfResponse
from auth import activation, users
from auth.authorization import can, filter_output
from auth.dependencies import can_request, get_caller, get_store
from auth.features import Feature
from auth.models import AnonymousUser, User
from core.errors import ForbiddenError

# Auth policy:
# - POST  /api/v1/users:             create:user (anonymous callers)
# - GET   /api/v1/users/{username}:  public
# - PATCH /api/v1/users/{username}:  update:user + self-or-update:user:others
router = APIRouter()


@router.post("/users", response_model=UserSelfResponse, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    caller: User | AnonymousUser = Depends(can_request(Feature.CREATE_USER)),
) -> dict:
    """Register a new account and e-mail its activation link.

    The new account holds only read:activation_token until the link is used.
    The response is filtered as read:user:self on behalf of the new user, so
    the registrant sees the e-mail it just submitted.
    """
    store = get_store(request)
    new_user = users.create(store, body.username, body.email, body.password)
    token = activation.issue(store, new_user.id)
    activation.send_email_to_user(request.app.state.mailer, new_user, token)
    return filter_output(new_user, Feature.READ_USER_SELF, new_user)


@router.get("/users/{username}", response_model=UserResponse)
def get_user(
    request: Request,
    username: str,
    caller: User | AnonymousUser = Depends(get_caller),
) -> dict:
    user = users.find_by_username(get_store(request), username)
    return filter_output(caller, Feature.READ_USER, user)


@router.patch("/users/{username}", response_model=UserResponse)
def update_user(
    request: Request,
    username: str,
    body: UserPatch,
    caller: User | AnonymousUser = Depends(can_request(Feature.UPDATE_USER)),
) -> dict:
    """Update the user currently named username.

    Omitted fields are left as they are. Raises 404 if the user does not
    exist, 403 if the caller is neither that user nor holds
    update:user:others, 400 if the new username / e-mail is taken.
    """
    store = get_store(request)
    target = users.find_by_username(store, username)
    if not can(caller, Feature.UPDATE_USER, target):
        raise ForbiddenError(
            message="You do not have permission to update another user.",
            action=f'Check that your user has the feature "{Feature.UPDATE_USER_OTHERS.value}".',
        )
    updated = users.update(store, target.username, **body.model_dump(exclude_unset=True))
    return filter_output(caller, Feature.UPDATE_USER, updated)
