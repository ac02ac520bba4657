"""
API request and response models for the credentials REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

No response model has a password or password_hash field: the digest cannot
be serialized by accident because there is nowhere for it to go.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User

# ---------------------------------------------------------------------------
# Errors / health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    database: str = "ok"


# ---------------------------------------------------------------------------
# Request models
#
# Fields default to "" / None rather than being required so that missing
# input reaches the validator and is reported with a specific message.
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    name: str = ""
    email: str = ""
    password: str = Field(default="", repr=False)


class LoginRequest(BaseModel):
    email: str = ""
    password: str = Field(default="", repr=False)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(default="", repr=False)


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    old_password: str = Field(default="", repr=False)
    new_password: str = Field(default="", repr=False)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserCreatedResponse(BaseModel):
    """Response for POST /register."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> "UserCreatedResponse":
        return cls(id=user.id, name=user.name, email=user.email)


class UserSummary(BaseModel):
    """One row of GET /users."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(id=user.id, name=user.name, email=user.email)


class ProfileResponse(BaseModel):
    """Response for GET /users/me and PATCH /users/me/update."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    is_deleted: bool

    @classmethod
    def from_user(cls, user: User) -> "ProfileResponse":
        return cls(id=user.id, name=user.name, email=user.email, is_deleted=user.is_deleted)


class UserListResponse(BaseModel):
    """Response for GET /users."""

    users: list[UserSummary]
    total_users: int
    page: int
    limit: int


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str


class RefreshResponse(BaseModel):
    access_token: str


class MessageResponse(BaseModel):
    message: str
