"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work. The API contract lives separately in api/models.py, which is the
only place a User is turned into JSON -- and it has no secret fields.

Layer rule: no imports from api/, media/, or subscriptions/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account, which doubles as a channel.

    username is stored lower-cased; email is stored exactly as submitted.

    hashed_password is a bcrypt hash, never the plaintext.
    refresh_token is the most recently issued refresh token, or None when the
    user is logged out. Any other presented refresh token is stale.
    """

    username: str
    email: str
    fullname: str
    avatar: str
    cover_image: str = ""
    hashed_password: str | None = None
    refresh_token: str | None = None
    id: int | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, refreshed by store on every update


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass
class LoginResult:
    user: User
    access_token: str
    refresh_token: str
