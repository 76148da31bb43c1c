"""
auth/authentication.py -- Credential verification (e-mail + password).

get_authenticated_user() is the only sanctioned way to check a password.
Do NOT inline get_user_by_email() + verify_password() in a route: that
re-introduces both the enumeration and the timing leak handled here.

Security:
  Uniform failure: an unknown e-mail and a wrong password raise the same
      UnauthorizedError with the same message and action, so a client cannot
      learn which e-mails are registered.
  Timing equalization: when the e-mail is unknown, bcrypt still runs against
      _DUMMY_HASH so both failure paths cost one bcrypt verification.
  Errors that are not "credentials do not match" (database down, malformed
      stored hash) propagate unchanged -- they are not authentication failures.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from auth import users
from auth.models import User
from auth.store import IdentityStore
from auth.tokens import _DUMMY_HASH, verify_password
from core.errors import NotFoundError, UnauthorizedError

logger = logging.getLogger("bonsai.auth")

_FAILURE_MESSAGE = "Authentication data does not match."
_FAILURE_ACTION = "Check that the data sent is correct."


def get_authenticated_user(store: IdentityStore, email: str, password: str) -> User:
    """Return the user whose e-mail and password match, else raise UnauthorizedError."""
    try:
        user = users.find_by_email(store, email)
    except NotFoundError as exc:
        verify_password(password, _DUMMY_HASH)
        logger.info("Authentication failed: unknown e-mail")
        raise UnauthorizedError(message=_FAILURE_MESSAGE, action=_FAILURE_ACTION) from exc

    if not verify_password(password, user.password):
        logger.info("Authentication failed: wrong password for user %s", user.id)
        raise UnauthorizedError(message=_FAILURE_MESSAGE, action=_FAILURE_ACTION)

    return user
