"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as catalog/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is a UNIQUE constraint, so the database is the final
  arbiter even when two requests race past the route-level pre-check. The
  resulting IntegrityError is translated to ConflictError here.

Snapshots:
  update_user() and delete_user() use UPDATE/DELETE ... RETURNING, so the
  returned User is the row the statement actually wrote or removed. There is
  no select-then-act window.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Table, Text, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.database import metadata
from core.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger("storefront.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

# Every read except the credential lookup selects these -- never the hash.
_PUBLIC_COLUMNS = (_users.c.id, _users.c.name, _users.c.email, _users.c.created_at)

_DEMO_USERS: tuple[tuple[str, str, str], ...] = (
    ("Juan Pérez", "juan@example.com", "123456"),
    ("María García", "maria@example.com", "654321"),
)

_EMAIL_CONFLICT_MESSAGE = "El email ya está en uso"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(engine)
        user = store.create_user("Ana", "ana@example.com", hash_password("secret"))
        store.update_user(user.id, {"name": "Ana María"})
        store.delete_user(user.id)
    """

    # Columns a partial update may touch. Validated before any SQL is built so
    # the dynamic .values(**fields) call can only ever name these columns.
    UPDATABLE_FIELDS: frozenset[str] = frozenset({"name", "email", "password_hash"})

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine, tables=[_users])

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def list_users(self) -> list[User]:
        """Return all users ordered by id. Password hashes are not loaded."""
        with self.engine.connect() as conn:
            rows = conn.execute(select(*_PUBLIC_COLUMNS).order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(select(*_PUBLIC_COLUMNS).where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email, including the password hash.

        Only the login flow and uniqueness checks should call this.
        """
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_user(self, name: str, email: str, password_hash: str) -> User:
        """Insert a new user and return the stored snapshot.

        Raises ConflictError if the email is already registered.
        """
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    _users.insert()
                    .values(name=name, email=email, password_hash=password_hash, created_at=_now_iso())
                    .returning(*_PUBLIC_COLUMNS)
                ).fetchone()
                conn.commit()
        except IntegrityError as exc:
            raise ConflictError(_EMAIL_CONFLICT_MESSAGE, code="email_conflict") from exc
        return _row_to_user(row)

    def update_user(self, user_id: int, fields: dict) -> User:
        """Apply a partial update and return the post-update snapshot.

        fields holds only the values the caller explicitly supplied; columns
        not named keep their current value.

        Raises:
            ValidationError: fields is empty.
            ValueError:      fields names a column outside UPDATABLE_FIELDS.
            NotFoundError:   no user with user_id.
            ConflictError:   the new email belongs to another user.
        """
        if not fields:
            raise ValidationError("No hay campos para actualizar", code="no_changes")
        unknown = set(fields) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    _users.update().where(_users.c.id == user_id).values(**fields).returning(*_PUBLIC_COLUMNS)
                ).fetchone()
                conn.commit()
        except IntegrityError as exc:
            raise ConflictError(_EMAIL_CONFLICT_MESSAGE, code="email_conflict") from exc
        if row is None:
            raise NotFoundError("Usuario no encontrado", code="user_not_found")
        return _row_to_user(row)

    def delete_user(self, user_id: int) -> User:
        """Delete a user and return the snapshot of the removed row.

        Raises NotFoundError if no such user exists.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.delete().where(_users.c.id == user_id).returning(*_PUBLIC_COLUMNS)
            ).fetchone()
            conn.commit()
        if row is None:
            raise NotFoundError("Usuario no encontrado", code="user_not_found")
        return _row_to_user(row)

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def seed_demo_users(self, hash_password: Callable[[str], str]) -> int:
        """Insert the demo accounts if the users table is empty.

        Returns the number of rows inserted (0 when users already exist), so
        calling this on every startup is safe.
        """
        if self.count_users() > 0:
            return 0
        created_at = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert(),
                [
                    {
                        "name": name,
                        "email": email,
                        "password_hash": hash_password(password),
                        "created_at": created_at,
                    }
                    for name, email, password in _DEMO_USERS
                ],
            )
            conn.commit()
        logger.info("Seeded %d demo users", len(_DEMO_USERS))
        return len(_DEMO_USERS)


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=getattr(row, "password_hash", None),
        created_at=row.created_at,
    )
