"""
auth/tokens.py -- JWT issuance/verification and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Two token classes with separate secrets and
       separate expiries:
         access  -- short-lived, carries identity claims (id, username, email,
                    fullname). Authorizes individual requests.
         refresh -- long-lived, carries only the subject id. Used solely to
                    mint a new access/refresh pair.
       Every token carries a random jti so two issuances for the same user in
       the same second never produce the same string. Rotation relies on that.

  TokenService receives a TokenConfig at construction. It never reads
       process-wide settings, so tests can run isolated services with
       distinct secrets side by side.

  Passwords: bcrypt directly (no passlib wrapper).

Layer rule: no imports from api/, media/, or subscriptions/.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

if TYPE_CHECKING:
    from auth.models import User
    from core.config import Settings

_ALGORITHM = "HS256"

ACCESS = "access"
REFRESH = "refresh"


class InvalidTokenError(Exception):
    """Signature mismatch, expiry, malformed token or wrong token type.

    Internal to the token layer: the auth service maps it to an
    AuthenticationError with a generic message.
    """


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt rejects inputs longer than 72 bytes; the API models cap password
    length at 72 characters before this is reached.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at import so the first failed login costs the same as later ones.
# Logins for unknown accounts still run one bcrypt check against it, so response
# time does not reveal whether the account exists.
DUMMY_HASH: str = hash_password("vidtube-timing-dummy")


# ---------------------------------------------------------------------------
# Token service
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenConfig:
    """Secrets and lifetimes for both token classes."""

    access_secret: str
    refresh_secret: str
    access_expire_seconds: int = 15 * 60
    refresh_expire_seconds: int = 10 * 24 * 3600
    algorithm: str = _ALGORITHM

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenConfig:
        return cls(
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            access_expire_seconds=settings.access_token_expire_seconds,
            refresh_expire_seconds=settings.refresh_token_expire_seconds,
        )


class TokenService:
    """Issues and verifies signed, expiring access and refresh tokens.

    Usage:
        tokens = TokenService(TokenConfig.from_settings(get_settings()))
        access = tokens.issue_access_token(user)
        claims = tokens.verify_access_token(access)
    """

    def __init__(self, config: TokenConfig) -> None:
        self.config = config

    def issue_access_token(self, user: User) -> str:
        claims = {
            "sub": str(user.id),
            "username": user.username,
            "email": user.email,
            "fullname": user.fullname,
        }
        return self._encode(claims, ACCESS, self.config.access_secret, self.config.access_expire_seconds)

    def issue_refresh_token(self, user: User) -> str:
        return self._encode(
            {"sub": str(user.id)},
            REFRESH,
            self.config.refresh_secret,
            self.config.refresh_expire_seconds,
        )

    def verify(self, token: str, secret: str) -> dict:
        """Decode and verify a token. Raises InvalidTokenError on any failure.

        Signature and expiry failures are not distinguished; callers only need
        to know the token is unusable.
        """
        try:
            claims = jwt.decode(token, secret, algorithms=[self.config.algorithm])
        except JWTError as exc:
            raise InvalidTokenError(str(exc)) from exc
        if "sub" not in claims:
            raise InvalidTokenError("token has no subject")
        return claims

    def verify_access_token(self, token: str) -> dict:
        return self._verify_typed(token, self.config.access_secret, ACCESS)

    def verify_refresh_token(self, token: str) -> dict:
        return self._verify_typed(token, self.config.refresh_secret, REFRESH)

    def _verify_typed(self, token: str, secret: str, token_type: str) -> dict:
        claims = self.verify(token, secret)
        if claims.get("type") != token_type:
            raise InvalidTokenError(f"expected a {token_type} token")
        return claims

    def _encode(self, claims: dict, token_type: str, secret: str, expire_seconds: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "type": token_type,
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": now + timedelta(seconds=expire_seconds),
        }
        return jwt.encode(payload, secret, algorithm=self.config.algorithm)


def subject_id(claims: dict) -> int:
    """Return the numeric user id carried in the sub claim."""
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidTokenError("malformed subject") from exc
