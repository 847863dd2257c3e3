"""
auth/service.py -- Auth flow controller: register, login, refresh, logout,
password change and profile updates.

The service owns the session state machine for one user:

    Anonymous --login--> Authenticated --logout--> Anonymous
                         Authenticated --refresh--> Authenticated (rotated pair)

It knows nothing about HTTP. Routes hand it plain values (form fields, local
file paths, cookie values) and turn its results into responses and cookies.

Error policy:
  Registration and login validation failures carry specific messages.
  Every refresh failure is an AuthenticationError; verification problems
  (bad signature, expiry, unknown subject) share one generic message.
  Unexpected failures while signing or persisting tokens are logged and
  re-raised as TokenGenerationError so raw internals never reach the client.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from auth.models import LoginResult, TokenPair, User
from auth.store import UserStore, blank_fields
from auth.tokens import DUMMY_HASH, InvalidTokenError, TokenService, hash_password, subject_id, verify_password
from core.errors import (
    ApiError,
    AuthenticationError,
    ConflictError,
    NotFoundError,
    TokenGenerationError,
    UploadError,
    ValidationError,
)

logger = logging.getLogger("vidtube.auth")

# bcrypt only accepts passwords up to 72 bytes.
MAX_PASSWORD_BYTES = 72

INVALID_REFRESH_TOKEN = "Invalid refresh token"
REFRESH_TOKEN_REUSED = "Refresh token is expired or used"


class AuthService:
    """Orchestrates the credential store, token service and media uploader.

    uploader is any object with upload(local_path) -> dict | None
    (see media.uploader.MediaUploader).
    """

    def __init__(self, store: UserStore, tokens: TokenService, uploader) -> None:
        self.store = store
        self.tokens = tokens
        self.uploader = uploader

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        fullname: str,
        email: str,
        username: str,
        password: str,
        avatar_path: Optional[str | Path],
        cover_path: Optional[str | Path] = None,
    ) -> User:
        if blank_fields(fullname=fullname, email=email, username=username, password=password):
            self._discard(avatar_path, cover_path)
            raise ValidationError("All fields are required")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            self._discard(avatar_path, cover_path)
            raise ValidationError("Password is too long")

        if self.store.find_by_identifier(username=username, email=email) is not None:
            self._discard(avatar_path, cover_path)
            raise ConflictError("User with email or username already exists")

        if not avatar_path:
            self._discard(cover_path)
            raise ValidationError("Avatar file is required")

        avatar = self.uploader.upload(avatar_path)
        if not avatar or not avatar.get("url"):
            self._discard(cover_path)
            raise UploadError("Avatar file is required")
        cover = self.uploader.upload(cover_path) if cover_path else None
        cover_url = (cover or {}).get("url") or ""

        try:
            user = self.store.create_user(
                User(
                    fullname=fullname,
                    email=email,
                    username=username.lower(),
                    avatar=avatar["url"],
                    cover_image=cover_url,
                    hashed_password=hash_password(password),
                )
            )
        except ConflictError:
            # Lost a uniqueness race after uploading; the hosted images stay behind.
            logger.warning(
                "Registration conflict for %s after upload; orphaned media avatar=%s cover=%s",
                username.lower(),
                avatar["url"],
                cover_url or "-",
            )
            raise
        logger.info("Registered user %s (id=%s)", user.username, user.id)
        return user

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def login(self, username: Optional[str], email: Optional[str], password: str) -> LoginResult:
        if blank_fields(username=username) and blank_fields(email=email):
            raise ValidationError("username or email is required")

        user = self.store.find_by_identifier(username=username, email=email)
        if user is None:
            verify_password(password, DUMMY_HASH)
            raise NotFoundError("User does not exist")

        if not verify_password(password, user.hashed_password):
            logger.info("Failed login for user id=%s", user.id)
            raise AuthenticationError("Invalid user credentials")

        pair = self._issue_tokens(user)
        logger.info("User %s logged in", user.username)
        return LoginResult(
            user=self.store.get_by_id(user.id) or user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    def refresh_access_token(self, incoming: Optional[str]) -> TokenPair:
        """Exchange a refresh token for a new access/refresh pair.

        Only the most recently issued refresh token is accepted. The swap is
        a conditional update, so of two concurrent calls with the same token
        exactly one wins.
        """
        if not incoming:
            raise AuthenticationError("Unauthorized request")

        try:
            user_id = subject_id(self.tokens.verify_refresh_token(incoming))
        except InvalidTokenError as exc:
            raise AuthenticationError(INVALID_REFRESH_TOKEN) from exc

        user = self.store.get_by_id(user_id)
        if user is None:
            raise AuthenticationError(INVALID_REFRESH_TOKEN)

        if incoming != user.refresh_token:
            logger.warning("Rejected stale refresh token for user id=%s", user_id)
            raise AuthenticationError(REFRESH_TOKEN_REUSED)

        try:
            pair = TokenPair(
                access_token=self.tokens.issue_access_token(user),
                refresh_token=self.tokens.issue_refresh_token(user),
            )
            rotated = self.store.rotate_refresh_token(user.id, expected=incoming, new=pair.refresh_token)
        except Exception as exc:
            logger.exception("Token generation failed for user id=%s", user.id)
            raise TokenGenerationError() from exc

        if not rotated:
            logger.warning("Lost refresh race for user id=%s", user_id)
            raise AuthenticationError(REFRESH_TOKEN_REUSED)
        return pair

    def logout(self, user_id: int) -> None:
        self.store.set_refresh_token(user_id, None)
        logger.info("User id=%s logged out", user_id)

    # ------------------------------------------------------------------
    # Account maintenance
    # ------------------------------------------------------------------

    def change_password(self, user_id: int, old_password: str, new_password: str) -> None:
        """Replace the password hash. Existing tokens stay valid."""
        if blank_fields(new_password=new_password):
            raise ValidationError("New password is required")
        if len(new_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError("Password is too long")
        user = self._require_user(user_id)
        if not verify_password(old_password, user.hashed_password):
            raise AuthenticationError("Invalid old password")
        self.store.update_password(user.id, hash_password(new_password))
        logger.info("Password changed for user id=%s", user.id)

    def update_account_details(self, user_id: int, fullname: str, email: str) -> User:
        if blank_fields(fullname=fullname, email=email):
            raise ValidationError("All fields are required")
        return self.store.update_account(user_id, fullname, email) or self._require_user(user_id)

    def update_avatar(self, user_id: int, avatar_path: Optional[str | Path]) -> User:
        if not avatar_path:
            raise ValidationError("Avatar file is missing")
        uploaded = self.uploader.upload(avatar_path)
        if not uploaded or not uploaded.get("url"):
            raise UploadError("Error while uploading avatar")
        return self.store.update_avatar(user_id, uploaded["url"]) or self._require_user(user_id)

    def update_cover_image(self, user_id: int, cover_path: Optional[str | Path]) -> User:
        if not cover_path:
            raise ValidationError("Cover image file is missing")
        uploaded = self.uploader.upload(cover_path)
        if not uploaded or not uploaded.get("url"):
            raise UploadError("Error while uploading cover image")
        return self.store.update_cover_image(user_id, uploaded["url"]) or self._require_user(user_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _issue_tokens(self, user: User) -> TokenPair:
        """Sign a fresh pair and make its refresh token the current one."""
        try:
            pair = TokenPair(
                access_token=self.tokens.issue_access_token(user),
                refresh_token=self.tokens.issue_refresh_token(user),
            )
            self.store.set_refresh_token(user.id, pair.refresh_token)
        except ApiError:
            raise
        except Exception as exc:
            logger.exception("Token generation failed for user id=%s", user.id)
            raise TokenGenerationError() from exc
        return pair

    def _require_user(self, user_id: int) -> User:
        user = self.store.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def _discard(*paths: Optional[str | Path]) -> None:
        """Remove temp files of a registration that will not be uploaded."""
        for path in paths:
            if path:
                Path(path).unlink(missing_ok=True)
