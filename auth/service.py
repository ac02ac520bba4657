"""
auth/service.py -- Account Service: register, login, refresh, profile, password, deactivate.

Composes the validator, hasher, store and token service. Every collaborator
is passed in at construction time; nothing here reaches for a module-level
database handle, so tests can run any number of isolated instances side by
side.

Protected operations take the caller's Identity as an explicit argument. The
authorization gate produces it; this module never looks identity up from
request context.

All failures are raised as auth.errors types. The api/ layer maps each one to
exactly one HTTP status.
"""

from __future__ import annotations

import logging

from auth.errors import AccountDeactivatedError, AuthError, NotFoundError, ValidationError
from auth.models import Identity, TokenKind, TokenPair, User, UserPage
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService
from auth.validation import validate_name, validate_password, validate_registration

logger = logging.getLogger("credapi.auth")

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
MAX_OFFSET = 2**63 - 1


class AccountService:
    """Orchestrates the credential lifecycle on top of a UserStore.

    Usage:
        accounts = AccountService(store, PasswordHasher(), TokenService(settings))
        user = accounts.register("Ada Lovelace", "ada@example.com", "analytical")
        pair = accounts.login("ada@example.com", "analytical")
    """

    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        max_page_size: int = 100,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.max_page_size = max_page_size

    # ------------------------------------------------------------------
    # Public flows
    # ------------------------------------------------------------------

    def register(self, name: str | None, email: str | None, password: str | None) -> User:
        """Create an account. Raises ValidationError or ConflictError."""
        registration = validate_registration(name, email, password)
        user = User(
            name=registration.name,
            email=registration.email,
            password_hash=self.hasher.hash(registration.password),
        )
        user.id = self.store.create(user)
        logger.info("Registered user id=%s", user.id)
        return user

    def login(self, email: str | None, password: str | None) -> TokenPair:
        """Exchange email + password for an access/refresh token pair.

        Unknown email and wrong password are the same AuthError (401). The
        deactivated check runs only after the password verified, so a 403
        is never an oracle for whether an email is registered.
        """
        email = (email or "").strip()
        password = password or ""
        if not email or not password:
            raise ValidationError("Email and password are required.")

        try:
            user = self.store.get_by_email(email)
        except NotFoundError:
            # Equalize timing -- do NOT return before running bcrypt.
            self.hasher.burn(password)
            logger.info("Login failed: unknown email")
            raise AuthError("Invalid email or password.", code="bad_credentials") from None

        if not self.hasher.verify(password, user.password_hash):
            logger.info("Login failed: bad password for user id=%s", user.id)
            raise AuthError("Invalid email or password.", code="bad_credentials")
        if user.is_deleted:
            logger.info("Login refused: user id=%s is deactivated", user.id)
            raise AccountDeactivatedError("Account is deactivated. Contact support.")

        return TokenPair(
            access_token=self.tokens.issue_access(user.id),
            refresh_token=self.tokens.issue_refresh(user.id),
        )

    def refresh(self, refresh_token: str | None) -> str:
        """Mint a new access token from a valid refresh token."""
        if not refresh_token:
            raise AuthError("Invalid refresh token.", code="invalid_token")
        user_id = self.tokens.validate(refresh_token, TokenKind.refresh)
        return self.tokens.issue_access(user_id)

    # ------------------------------------------------------------------
    # Protected flows (caller identity resolved by the gate)
    # ------------------------------------------------------------------

    def get_profile(self, identity: Identity) -> User:
        return self.store.get_by_id(identity.user_id)

    def list_users(self, page: int | None = None, limit: int | None = None) -> UserPage:
        """Return one page of active users.

        page and limit fall back to 1 and 10 when absent or non-positive;
        limit is capped at max_page_size.
        """
        page = page if page and page > 0 else DEFAULT_PAGE
        limit = limit if limit and limit > 0 else DEFAULT_PAGE_SIZE
        limit = min(limit, self.max_page_size)
        # Past MAX_OFFSET the page is empty anyway; SQLite integers are 64-bit.
        offset = min((page - 1) * limit, MAX_OFFSET)
        users, total = self.store.list_active(limit=limit, offset=offset)
        return UserPage(users=users, total=total, page=page, limit=limit)

    def update_profile(self, identity: Identity, name: str | None) -> User:
        """Change the caller's display name. Email is immutable here."""
        if name is None or not name.strip():
            raise ValidationError("Name is required.")
        name = validate_name(name)
        self.store.update_name(identity.user_id, name)
        return self.store.get_by_id(identity.user_id)

    def change_password(self, identity: Identity, old_password: str | None, new_password: str | None) -> None:
        """Replace the caller's password after re-verifying the current one."""
        if not old_password or not new_password:
            raise ValidationError("Both old and new passwords are required.")
        new_password = validate_password(new_password)

        current_hash = self.store.get_password_hash(identity.user_id)
        if not self.hasher.verify(old_password, current_hash):
            logger.info("Password change refused: bad old password for user id=%s", identity.user_id)
            raise AuthError("Incorrect old password.", code="bad_credentials")

        self.store.update_password_hash(identity.user_id, self.hasher.hash(new_password))
        logger.info("Password changed for user id=%s", identity.user_id)

    def deactivate(self, identity: Identity) -> None:
        """Soft-delete the caller. Repeating it is harmless."""
        self.store.soft_delete(identity.user_id)
        logger.info("Deactivated user id=%s", identity.user_id)
