"""
API request and response models for the MeuBonsai.App identity REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers run domain objects
through auth.authorization.filter_output() and validate the result against
these models, so a field the caller may not see can never slip into a
response.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# Usernames appear in URLs (/users/{username}); keep them path-safe.
USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"


def _strip(value):
    # Identifiers only. Passwords are compared byte for byte and never stripped.
    return value.strip() if isinstance(value, str) else value


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    action: Optional[str] = None
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Request body for POST /api/v1/users."""

    username: str = Field(min_length=1, max_length=30, pattern=USERNAME_PATTERN)
    email: EmailStr = Field(max_length=254)
    password: str = Field(min_length=1, max_length=72)

    _strip_identifiers = field_validator("username", "email", mode="before")(_strip)


class UserPatch(BaseModel):
    """Request body for PATCH /api/v1/users/{username}. Omitted fields are left unchanged."""

    username: Optional[str] = Field(default=None, min_length=1, max_length=30, pattern=USERNAME_PATTERN)
    email: Optional[EmailStr] = Field(default=None, max_length=254)
    password: Optional[str] = Field(default=None, min_length=1, max_length=72)

    _strip_identifiers = field_validator("username", "email", mode="before")(_strip)


class SessionCreate(BaseModel):
    """Request body for POST /api/v1/sessions."""

    email: str = Field(min_length=1, max_length=254)
    password: str = Field(min_length=1, max_length=72)

    _strip_email = field_validator("email", mode="before")(_strip)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public projection of a user (read:user, update:user)."""

    id: str
    username: str
    features: list[str]
    created_at: datetime
    updated_at: datetime


class UserSelfResponse(UserResponse):
    """Owner projection of a user (read:user:self) -- adds the e-mail."""

    email: str


class SessionResponse(BaseModel):
    id: str
    token: str
    user_id: str
    expires_at: datetime
    created_at: datetime
    updated_at: datetime


class ActivationTokenResponse(BaseModel):
    id: str
    user_id: str
    used_at: Optional[datetime]
    expires_at: datetime
    created_at: datetime
    updated_at: datetime


class MigrationResponse(BaseModel):
    path: str
    name: str
    timestamp: int


class DatabaseStatus(BaseModel):
    # version is only present for callers holding read:status:all
    version: Optional[str] = None
    max_connections: int
    opened_connections: int


class StatusDependencies(BaseModel):
    database: DatabaseStatus


class StatusResponse(BaseModel):
    """Response for GET /api/v1/status."""

    updated_at: datetime
    dependencies: StatusDependencies
