"""
auth/validation.py -- Structural checks on account input.

Pure functions of their arguments plus the constant rules below. No I/O, no
logging. Each check trims surrounding whitespace before measuring, and returns
the trimmed value so callers persist exactly what was validated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from auth.errors import ValidationError

MIN_NAME_LENGTH = 3
# Matches the String(255) columns in auth/store.py.
MAX_NAME_LENGTH = 255
MAX_EMAIL_LENGTH = 255
MIN_PASSWORD_LENGTH = 6
# bcrypt ignores everything past the first 72 bytes (and bcrypt>=5 refuses it).
MAX_PASSWORD_BYTES = 72

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


@dataclass(frozen=True)
class Registration:
    """Validated registration input. name and email are already trimmed."""

    name: str
    email: str
    password: str = field(repr=False)


def validate_name(name: str | None) -> str:
    trimmed = (name or "").strip()
    if len(trimmed) < MIN_NAME_LENGTH:
        raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters long.")
    if len(trimmed) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters long.")
    return trimmed


def validate_email(email: str | None) -> str:
    trimmed = (email or "").strip()
    if len(trimmed) > MAX_EMAIL_LENGTH:
        raise ValidationError(f"Invalid email format: at most {MAX_EMAIL_LENGTH} characters.")
    if not EMAIL_PATTERN.fullmatch(trimmed):
        raise ValidationError("Invalid email format.")
    return trimmed


def validate_password(password: str | None) -> str:
    """Check password length rules.

    Length is measured on the trimmed value, but the password is returned
    unmodified: the digest is computed over exactly what the user typed, so
    login must not need to guess whether whitespace was stripped.
    """
    password = password or ""
    if len(password.strip()) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long.")
    return password


def validate_registration(name: str | None, email: str | None, password: str | None) -> Registration:
    """Validate a candidate account. Raises ValidationError on the first failing rule."""
    return Registration(
        name=validate_name(name),
        email=validate_email(email),
        password=validate_password(password),
    )
