"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores, services and
routes do the work; these classes only own the domain shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class User:
    """A registered account.

    password_hash is the bcrypt digest. It is never null for stored users and
    never serialized by the api/ layer -- response models list their fields
    explicitly and this one is not among them.

    id is None before the record is written to the database.
    """

    name: str
    email: str
    password_hash: str = field(repr=False)
    id: int | None = None
    is_deleted: bool = False


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as resolved by the authorization gate.

    Threaded explicitly from the gate into every protected operation.
    """

    user_id: int


class TokenKind(str, Enum):
    access = "access"
    refresh = "refresh"


@dataclass(frozen=True)
class TokenPair:
    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)


@dataclass
class UserPage:
    """One page of active users plus the pagination metadata the caller used."""

    users: list[User]
    total: int
    page: int
    limit: int
