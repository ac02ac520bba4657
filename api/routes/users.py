"""
api/routes/users.py -- Endpoints for authenticated users.

Routes:
  GET    /users                      -- paginated list of active users
  GET    /users/me                   -- caller's profile
  PATCH  /users/me/update            -- change caller's name
  DELETE /users/me/deactivate        -- soft-delete caller
  POST   /users/me/reset-password    -- change caller's password

Auth policy: every route here depends on get_identity, which rejects the
request with 401 before the handler runs unless a valid bearer access token
is presented. The resolved Identity is passed to AccountService explicitly.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.models import (
    MessageResponse,
    ProfileResponse,
    ResetPasswordRequest,
    UpdateProfileRequest,
    UserListResponse,
    UserSummary,
)
from auth.dependencies import get_account_service, get_identity
from auth.models import Identity
from auth.service import AccountService

router = APIRouter(prefix="/users")


@router.get("", response_model=UserListResponse)
def list_users(
    page: Optional[int] = Query(default=None),
    limit: Optional[int] = Query(default=None),
    identity: Identity = Depends(get_identity),
    accounts: AccountService = Depends(get_account_service),
) -> UserListResponse:
    """List active users. page/limit default to 1/10 when absent or non-positive."""
    result = accounts.list_users(page=page, limit=limit)
    return UserListResponse(
        users=[UserSummary.from_user(u) for u in result.users],
        total_users=result.total,
        page=result.page,
        limit=result.limit,
    )


@router.get("/me", response_model=ProfileResponse)
def me(
    identity: Identity = Depends(get_identity),
    accounts: AccountService = Depends(get_account_service),
) -> ProfileResponse:
    """Return the caller's profile, including is_deleted."""
    return ProfileResponse.from_user(accounts.get_profile(identity))


@router.patch("/me/update", response_model=ProfileResponse)
def update_me(
    body: UpdateProfileRequest,
    identity: Identity = Depends(get_identity),
    accounts: AccountService = Depends(get_account_service),
) -> ProfileResponse:
    return ProfileResponse.from_user(accounts.update_profile(identity, body.name))


@router.delete("/me/deactivate", response_model=MessageResponse)
def deactivate_me(
    identity: Identity = Depends(get_identity),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Soft-delete the caller. Outstanding tokens stay valid until they expire."""
    accounts.deactivate(identity)
    return MessageResponse(message="User deleted successfully")


@router.post("/me/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    identity: Identity = Depends(get_identity),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Change the caller's password. 401 if old_password is wrong."""
    accounts.change_password(identity, body.old_password, body.new_password)
    return MessageResponse(message="Password updated successfully")
