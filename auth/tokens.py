"""
auth/tokens.py -- Signed, time-bounded access and refresh tokens.

Security design decisions:
  JWT: python-jose with HS256. A token carries only user_id, iat and exp.

  Kind separation: access tokens are signed with JWT_SECRET and refresh
       tokens with JWT_REFRESH_SECRET. There is no "kind" claim -- a token is
       an access token exactly when it verifies under the access secret. The
       two secrets must therefore stay distinct (Settings enforces this); an
       access token presented as a refresh token fails signature
       verification, and vice versa.

  Expiry: checked here rather than by python-jose so that the boundary is
       exact and the clock is injectable. A token is rejected once the
       current time is at or past exp.

  Failures: every failure mode (bad signature, malformed token, missing or
       mistyped claims, expiry) raises AuthError. Callers never see JWTError.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.errors import AuthError
from auth.models import TokenKind
from core.config import Settings

logger = logging.getLogger("credapi.auth")

_ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and validates access/refresh JWTs.

    Stateless apart from configuration: nothing is stored, and a token cannot
    be revoked before it expires.

    Usage:
        tokens = TokenService(get_settings())
        token = tokens.issue_access(user_id)
        user_id = tokens.validate(token, TokenKind.access)
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = _utcnow) -> None:
        self._secrets = {
            TokenKind.access: settings.jwt_secret,
            TokenKind.refresh: settings.jwt_refresh_secret,
        }
        self._windows = {
            TokenKind.access: timedelta(minutes=settings.jwt_access_expiration),
            TokenKind.refresh: timedelta(hours=settings.jwt_refresh_expiration),
        }
        self._clock = clock

    def issue_access(self, user_id: int) -> str:
        return self._issue(user_id, TokenKind.access)

    def issue_refresh(self, user_id: int) -> str:
        return self._issue(user_id, TokenKind.refresh)

    def _issue(self, user_id: int, kind: TokenKind) -> str:
        now = self._clock()
        payload = {
            "user_id": user_id,
            "iat": int(now.timestamp()),
            "exp": int((now + self._windows[kind]).timestamp()),
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=_ALGORITHM)

    def validate(self, token: str, expected_kind: TokenKind) -> int:
        """Return the user id embedded in a valid token of expected_kind.

        Raises AuthError if the signature does not verify under the secret for
        expected_kind, if the token or its claims are malformed, or if the
        token has expired.
        """
        try:
            payload = jwt.decode(
                token,
                self._secrets[expected_kind],
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            logger.info("Rejected %s token: %s", expected_kind.value, type(exc).__name__)
            raise AuthError("Invalid token.", code="invalid_token") from exc

        user_id = payload.get("user_id")
        exp = payload.get("exp")
        # bool is an int subclass; a token claiming user_id=true is malformed.
        if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(exp, int):
            logger.info("Rejected %s token: malformed claims", expected_kind.value)
            raise AuthError("Invalid token.", code="invalid_token")

        if int(self._clock().timestamp()) >= exp:
            raise AuthError("Token has expired.", code="token_expired")
        return user_id
