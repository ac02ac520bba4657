"""
api/routes/auth.py -- Public account endpoints.

Routes:
  POST /register  -- create an account; 201 {id, name, email}
  POST /login     -- email + password -> access and refresh tokens
  POST /refresh   -- refresh token -> new access token

Handlers are plain `def` so FastAPI runs them in its threadpool: bcrypt and
the store both block.

Errors raised by AccountService (auth.errors.*) are not caught here. The
AccountError handler in api/main.py turns each into its status code.

Security:
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.models import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    UserCreatedResponse,
)
from auth.dependencies import get_account_service
from auth.service import AccountService

# Auth policy: all three routes are public -- they are how a caller obtains
# credentials in the first place.
router = APIRouter()


@router.post("/register", response_model=UserCreatedResponse, status_code=201)
def register(
    body: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
) -> UserCreatedResponse:
    """Register a new account. 400 on invalid input, 409 if the email is taken."""
    user = accounts.register(body.name, body.email, body.password)
    return UserCreatedResponse.from_user(user)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    accounts: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Authenticate with email and password.

    401 for unknown email or wrong password (same error for both), 403 when
    the credentials are right but the account is deactivated.
    """
    pair = accounts.login(body.email, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/refresh", response_model=RefreshResponse)
def refresh(
    body: RefreshRequest,
    accounts: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Exchange a refresh token for a new access token. 401 if it is invalid or expired."""
    access_token = accounts.refresh(body.refresh_token)
    resp = JSONResponse(status_code=200, content=RefreshResponse(access_token=access_token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp
