"""
auth/tokens.py -- Password hashing, session token generation, cookie helpers.

Security design decisions:
  Passwords: bcrypt, used directly (no passlib wrapper). The cost factor comes
       from Settings.bcrypt_rounds (4 in DEBUG, 12 otherwise). The _DUMMY_HASH
       constant enables timing equalization in
       auth.authentication.get_authenticated_user() so response time does not
       reveal whether an e-mail is registered.

       bcrypt only looks at the first 72 bytes of a password and recent
       releases raise ValueError beyond that, so both hash_password() and
       verify_password() truncate explicitly. Anything else bcrypt raises
       (e.g. a malformed stored hash) propagates -- it is a data problem,
       not a wrong password.

  Session tokens: secrets.token_hex(48) -- 384 bits of entropy, 96 hex chars.
       Opaque and unguessable; stored as-is because the owner is allowed to
       read it back (read:session projection).

  Cookie: session_id, httpOnly, samesite=lax, secure when SECURE_COOKIES=true,
       max_age equal to the session lifetime so cookie and row expire together.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import secrets

import bcrypt

from core.config import get_settings

SESSION_COOKIE_NAME = "session_id"

_BCRYPT_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))


# Timing equalization dummy hash.
# Computed once at module load with the configured cost, so checking a
# password against it costs the same as checking against a real user's hash.
_DUMMY_HASH: str = hash_password("bonsai_timing_dummy")


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


def generate_session_token() -> str:
    return secrets.token_hex(48)


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation for most cases.
    """
    settings = get_settings()
    response.set_cookie(
        SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.session_expire_seconds,
        path="/",
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
