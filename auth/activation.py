"""
auth/activation.py -- Activation token lifecycle: issue, deliver, consume, promote.

A new account holds only read:activation_token. It proves control of its
e-mail address by sending back the token id it received, which trades the
token for ACTIVATED_USER_FEATURES:

    token = issue(store, user.id)
    send_email_to_user(mailer, user, token, origin)
    ...
    activate(store, token_id)   # consume() then promote()

Single use:
  consume() is one conditional UPDATE in the store. Of N concurrent requests
  carrying the same token id exactly one gets the token back; the rest get
  NotFoundError, the same error as for an unknown, expired or malformed id.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from auth import users
from auth.authorization import can
from auth.features import ACTIVATED_USER_FEATURES, Feature
from auth.models import ActivationToken, User
from auth.store import IdentityStore
from core.config import get_settings
from core.errors import ForbiddenError, NotFoundError
from core.mailer import Mailer

logger = logging.getLogger("bonsai.auth")

_TOKEN_NOT_FOUND = "The activation token used was not found in the system or has expired."
_TOKEN_NOT_FOUND_ACTION = "Sign up again."


def issue(store: IdentityStore, user_id: str) -> ActivationToken:
    """Create an activation token for user_id, valid for ACTIVATION_EXPIRE_SECONDS."""
    expires_at = store.clock() + timedelta(seconds=get_settings().activation_expire_seconds)
    token = store.create_activation_token(user_id, expires_at)
    logger.info("Activation token issued for user %s", user_id)
    return token


def find_valid(store: IdentityStore, token_id: str) -> ActivationToken:
    token = store.get_valid_activation_token(token_id)
    if token is None:
        raise NotFoundError(message=_TOKEN_NOT_FOUND, action=_TOKEN_NOT_FOUND_ACTION)
    return token


def consume(store: IdentityStore, token_id: str) -> ActivationToken:
    """Mark token_id used. Raises NotFoundError unless this call made the transition."""
    token = store.mark_activation_token_used(token_id)
    if token is None:
        raise NotFoundError(message=_TOKEN_NOT_FOUND, action=_TOKEN_NOT_FOUND_ACTION)
    logger.info("Activation token %s consumed", token.id)
    return token


def promote(store: IdentityStore, user_id: str) -> User:
    """Replace the user's features with ACTIVATED_USER_FEATURES.

    Only a user that still holds read:activation_token can be promoted, so
    an account whose features were changed later is never reset by a
    leftover token.
    """
    user = users.find_by_id(store, user_id)
    if not can(user, Feature.READ_ACTIVATION_TOKEN):
        raise ForbiddenError(
            message="You can no longer use activation tokens.",
            action="Contact support.",
        )
    promoted = users.set_features(store, user_id, list(ACTIVATED_USER_FEATURES))
    logger.info("User %s activated", user_id)
    return promoted


def activate(store: IdentityStore, token_id: str) -> ActivationToken:
    """Consume token_id and promote its owner. Returns the consumed token."""
    token = consume(store, token_id)
    promote(store, token.user_id)
    return token


def build_email(user: User, token: ActivationToken, origin: str, from_addr: str) -> dict:
    """Return the {from, to, subject, text} activation message for user."""
    return {
        "from": from_addr,
        "to": user.email,
        "subject": "Ative seu cadastro no MeuBonsai.App",
        "text": (
            f"{user.username}, clique no link abaixo para ativar seu cadastro no MeuBonsai.App\n"
            "\n"
            f"{origin.rstrip('/')}/cadastro/ativar/{token.id}\n"
            "\n"
            "Atenciosamente,\n"
            "Equipe MeuBonsai.App"
        ),
    }


def send_email_to_user(mailer: Mailer, user: User, token: ActivationToken, origin: str | None = None) -> None:
    """Deliver the activation link for token to user through mailer."""
    settings = get_settings()
    message = build_email(user, token, origin or settings.web_origin, settings.email_from)
    mailer.send(
        from_addr=message["from"],
        to=message["to"],
        subject=message["subject"],
        text=message["text"],
    )
