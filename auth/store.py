"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Services and routes never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Secret columns (hashed_password, refresh_token) are single-column updates
  (set_refresh_token, update_password) so changing them never re-validates or
  rewrites the profile fields.

  rotate_refresh_token() is a compare-and-swap in one UPDATE statement. Two
  concurrent refreshes presenting the same token cannot both succeed: the
  second UPDATE matches zero rows.

Layer rule: no imports from api/, media/, or subscriptions/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, or_
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.errors import ConflictError, ValidationError

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True, index=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("fullname", String(255), nullable=False, index=True),
    Column("avatar", Text, nullable=False),  # media host URL
    Column("cover_image", Text, nullable=False, server_default=""),
    Column("hashed_password", Text, nullable=False),
    Column("refresh_token", Text),  # NULL while logged out
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

REQUIRED_FIELDS = ("fullname", "email", "username", "avatar")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def blank_fields(**fields) -> list[str]:
    """Return the names of fields that are None or empty after trimming."""
    return [name for name, value in fields.items() if value is None or not str(value).strip()]


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///vidtube.db")
        user = store.create_user(User(username="ada", email="ada@x.com", ...))
        store.set_refresh_token(user.id, token)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by username. The lookup is case-insensitive because
        usernames are stored lower-cased."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username.strip().lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_identifier(self, username: str | None = None, email: str | None = None) -> User | None:
        """Return the user matching either the username or the email.

        Blank identifiers are ignored. Returns None when both are blank or
        nothing matches. Email comparison is exact (case preserved).
        """
        clauses = []
        if username and username.strip():
            clauses.append(_users.c.username == username.strip().lower())
        if email and email.strip():
            clauses.append(_users.c.email == email.strip())
        if not clauses:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(or_(*clauses)).order_by(_users.c.id)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a new user and return it as stored.

        Raises ValidationError if a required field is blank or the password
        hash is missing, ConflictError if the username or email is taken. The
        pre-check covers the common case; the UNIQUE constraints catch two
        concurrent registrations racing past it.
        """
        if blank_fields(**{name: getattr(user, name) for name in REQUIRED_FIELDS}) or not user.hashed_password:
            raise ValidationError("All fields are required")

        username = user.username.strip().lower()
        email = user.email.strip()
        if self.find_by_identifier(username=username, email=email) is not None:
            raise ConflictError("User with email or username already exists")

        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=username,
                        email=email,
                        fullname=user.fullname.strip(),
                        avatar=user.avatar,
                        cover_image=user.cover_image or "",
                        hashed_password=user.hashed_password,
                        refresh_token=None,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise ConflictError("User with email or username already exists") from exc
        return self.get_by_id(result.inserted_primary_key[0])

    def set_refresh_token(self, user_id: int, token: str | None) -> None:
        """Store (or clear, with None) the user's current refresh token."""
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(refresh_token=token))
            conn.commit()

    def rotate_refresh_token(self, user_id: int, expected: str, new: str) -> bool:
        """Replace the refresh token only if the stored one equals expected.

        Returns False when the stored token differs (already rotated, logged
        out, or never issued). Atomic per row.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == user_id) & (_users.c.refresh_token == expected))
                .values(refresh_token=new)
            )
            conn.commit()
        return result.rowcount > 0

    def update_password(self, user_id: int, hashed_password: str) -> None:
        self._update(user_id, hashed_password=hashed_password)

    def update_account(self, user_id: int, fullname: str, email: str) -> User | None:
        """Replace fullname and email. ConflictError if the email belongs to
        another account."""
        try:
            return self._update(user_id, fullname=fullname.strip(), email=email.strip())
        except IntegrityError as exc:
            raise ConflictError("User with email already exists") from exc

    def update_avatar(self, user_id: int, url: str) -> User | None:
        return self._update(user_id, avatar=url)

    def update_cover_image(self, user_id: int, url: str) -> User | None:
        return self._update(user_id, cover_image=url)

    def _update(self, user_id: int, **fields) -> User | None:
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(updated_at=_now_iso(), **fields))
            conn.commit()
        return self.get_by_id(user_id)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        fullname=row.fullname,
        avatar=row.avatar,
        cover_image=row.cover_image or "",
        hashed_password=row.hashed_password,
        refresh_token=row.refresh_token,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
