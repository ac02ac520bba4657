"""
auth/errors.py -- Typed errors raised by the credential core.

Every error that leaves auth/ is one of the AccountError subclasses below.
Each class carries the HTTP status and machine-readable code it maps to, so
the api/ layer needs exactly one exception handler and never inspects
messages to pick a status.

Layer rule: no imports from api/ or web frameworks.
"""

from __future__ import annotations


class AccountError(Exception):
    """Base class for all errors crossing the auth/ boundary."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(AccountError):
    """Malformed or insufficient caller input."""

    status_code = 400
    code = "validation_error"


class AuthError(AccountError):
    """Bad credentials, bad/expired/wrong-kind token, or missing auth header."""

    status_code = 401
    code = "unauthorized"


class AccountDeactivatedError(AuthError):
    """Correct credentials for a soft-deleted account.

    Kept distinct from a plain AuthError (403 vs 401) so a client retry loop
    never confuses "wrong password" with "account is gone".
    """

    status_code = 403
    code = "account_deactivated"


class NotFoundError(AccountError):
    status_code = 404
    code = "not_found"


class ConflictError(AccountError):
    status_code = 409
    code = "conflict"


class InternalError(AccountError):
    """Store or hashing failure not attributable to caller input."""

    status_code = 500
    code = "internal_error"
