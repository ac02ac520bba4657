"""
auth/dependencies.py -- The authorization gate and its FastAPI Depends() helpers.

AuthorizationGate is a plain class: it turns the raw Authorization header
value into an Identity or raises AuthError. It knows nothing about FastAPI, so
it is unit-testable with strings.

get_identity() is the FastAPI dependency. Protected routes declare
    identity: Identity = Depends(get_identity)
and receive the resolved Identity as an explicit argument. A request whose
header is missing, malformed, not Bearer, or carries an invalid/expired/
refresh token never reaches the route body -- AuthError propagates to the
exception handler in api/main.py, which answers 401.

Layer rule: auth/dependencies.py may import from fastapi (for Request/Depends)
because this module is part of the FastAPI dependency injection system.
Nothing else in auth/ does.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.errors import AuthError
from auth.models import Identity, TokenKind
from auth.service import AccountService
from auth.tokens import TokenService

logger = logging.getLogger("credapi.auth")

_BEARER_SCHEME = "bearer"


class AuthorizationGate:
    """Resolves a bearer access token to an Identity.

    Only access tokens are accepted: a refresh token fails validation under
    the access secret.
    """

    def __init__(self, tokens: TokenService) -> None:
        self._tokens = tokens

    def authenticate(self, authorization: str | None) -> Identity:
        """Return the Identity for an "Authorization: Bearer <token>" header value.

        The scheme name is matched case-insensitively (RFC 7235). Exactly one
        space-separated token must follow it.
        """
        if not authorization:
            raise AuthError("Missing Authorization header.", code="missing_token")

        parts = authorization.split(" ")
        if len(parts) != 2 or parts[0].lower() != _BEARER_SCHEME or not parts[1]:
            raise AuthError("Invalid Authorization header format.", code="invalid_auth_header")

        user_id = self._tokens.validate(parts[1], TokenKind.access)
        return Identity(user_id=user_id)


def get_identity(request: Request) -> Identity:
    """Require a valid bearer access token. Raises AuthError (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(get_identity)): ...
    """
    gate: AuthorizationGate = request.app.state.gate
    return gate.authenticate(request.headers.get("Authorization"))


def get_account_service(request: Request) -> AccountService:
    """Return the AccountService wired into this app instance at startup."""
    return request.app.state.accounts
