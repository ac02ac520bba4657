"""
auth/passwords.py -- bcrypt password hashing and verification.

bcrypt is used directly rather than through passlib: passlib's internal
wrap-bug detection feeds bcrypt a password longer than 72 bytes, which
bcrypt 4.x+ rejects. Direct usage has no compatibility shim.

The cost factor is fixed per deployment (Settings.bcrypt_rounds, default 12)
and recorded inside every digest, so digests produced under an older cost
still verify after the setting changes.
"""

from __future__ import annotations

import logging

import bcrypt

from auth.errors import InternalError

logger = logging.getLogger("credapi.auth")

DEFAULT_ROUNDS = 12


class PasswordHasher:
    """Salted, deliberately slow one-way hashing for passwords.

    Usage:
        hasher = PasswordHasher(rounds=12)
        digest = hasher.hash("secret")
        hasher.verify("secret", digest)  # True
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        # Timing equalization: verified against when the account does not
        # exist, so an unknown email costs the same bcrypt work as a real one.
        self._dummy_hash = self.hash("credapi_timing_dummy")

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt digest of plaintext with a fresh random salt."""
        try:
            return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")
        except (ValueError, TypeError) as exc:
            logger.error("Password hashing failed: %s", type(exc).__name__)
            raise InternalError("Failed to hash password.") from exc

    def verify(self, plaintext: str, digest: str) -> bool:
        """Return True if plaintext matches digest.

        bcrypt.checkpw compares in constant time. Any internal failure
        (malformed digest, unsupported prefix, oversized input) is a mismatch,
        never an exception.
        """
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except Exception:
            return False

    def burn(self, plaintext: str) -> None:
        """Spend one verification's worth of work and discard the result."""
        self.verify(plaintext, self._dummy_hash)
