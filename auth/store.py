"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is enforced by the UNIQUE constraint on users.email, and
  the resulting IntegrityError is the only source of ConflictError. There is
  no SELECT-then-INSERT pre-check; of two concurrent registrations for the
  same email, the constraint admits exactly one.

  Uniqueness is global, not scoped to active rows: the email of a
  soft-deleted account cannot be registered again.

Errors:
  Every SQLAlchemyError is translated to an auth.errors type before it leaves
  this module (IntegrityError on insert -> ConflictError, anything else ->
  InternalError). Lookups that find nothing raise NotFoundError.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, create_engine, event, false, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import ConflictError, InternalError, NotFoundError
from auth.models import User

logger = logging.getLogger("credapi.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", Text, nullable=False),  # bcrypt digest, never plaintext
    Column("is_deleted", Boolean, nullable=False, server_default=false()),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///users.db")
        user_id = store.create(User(name="Ada", email="ada@example.com", password_hash=digest))
        user = store.get_by_id(user_id)
        store.close()

    timeout is the number of seconds a call may wait on a database lock before
    failing with InternalError. It bounds every store call.
    """

    def __init__(self, db_url: str, timeout: float = 5.0) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = timeout
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error("Store operation %s failed: %s", operation, type(exc).__name__)
            raise InternalError("Database operation failed.") from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, user: User) -> int:
        """Insert a new user and return its assigned id.

        Raises ConflictError("email already registered") if any user, active
        or soft-deleted, already has this email.
        """
        with self._translate_errors("create"):
            try:
                with self.engine.begin() as conn:
                    result = conn.execute(
                        _users.insert().values(
                            name=user.name,
                            email=user.email,
                            password=user.password_hash,
                            is_deleted=False,
                        )
                    )
            except IntegrityError as exc:
                raise ConflictError("email already registered") from exc
            return result.inserted_primary_key[0]

    def update_name(self, user_id: int, name: str) -> None:
        """Overwrite the display name. Raises NotFoundError for an unknown id."""
        with self._translate_errors("update_name"):
            with self.engine.begin() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(name=name))
                updated = result.rowcount
        if updated == 0:
            raise NotFoundError("User not found.")

    def update_password_hash(self, user_id: int, password_hash: str) -> None:
        """Overwrite the stored digest. Raises NotFoundError for an unknown id."""
        with self._translate_errors("update_password_hash"):
            with self.engine.begin() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(password=password_hash))
                updated = result.rowcount
        if updated == 0:
            raise NotFoundError("User not found.")

    def soft_delete(self, user_id: int) -> None:
        """Flag the user as deleted. Idempotent; the row is never removed."""
        with self._translate_errors("soft_delete"):
            with self.engine.begin() as conn:
                conn.execute(_users.update().where(_users.c.id == user_id).values(is_deleted=True))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User:
        """Return the user with this id, deleted or not."""
        with self._translate_errors("get_by_id"):
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        if row is None:
            raise NotFoundError("User not found.")
        return _row_to_user(row)

    def get_by_email(self, email: str) -> User:
        """Look up a user by exact email (case-sensitive, as stored).

        The returned record includes password_hash; it is meant for login only.
        """
        with self._translate_errors("get_by_email"):
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        if row is None:
            raise NotFoundError("User not found.")
        return _row_to_user(row)

    def get_password_hash(self, user_id: int) -> str:
        """Return only the stored digest, for password-change flows."""
        with self._translate_errors("get_password_hash"):
            with self.engine.connect() as conn:
                digest = conn.execute(select(_users.c.password).where(_users.c.id == user_id)).scalar()
        if digest is None:
            raise NotFoundError("User not found.")
        return digest

    def list_active(self, limit: int, offset: int) -> tuple[list[User], int]:
        """Return (users, total) for non-deleted users ordered by id.

        total counts every active user, not just the returned page. limit and
        offset are used as given; clamping them is the caller's job.
        """
        active = _users.c.is_deleted == false()
        with self._translate_errors("list_active"):
            with self.engine.connect() as conn:
                total = conn.execute(select(func.count()).select_from(_users).where(active)).scalar()
                rows = conn.execute(
                    _users.select().where(active).order_by(_users.c.id.asc()).limit(limit).offset(offset)
                ).fetchall()
        return [_row_to_user(r) for r in rows], total or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
        except SQLAlchemyError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password,
        is_deleted=bool(row.is_deleted),
    )
