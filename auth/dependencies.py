"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two token sources are checked in priority order:
  1. "accessToken" cookie -- set by POST /users/login and /users/refresh-token.
  2. Authorization: Bearer <token> header -- API and mobile clients.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises AuthenticationError (401) if
unauthenticated; the ApiError handler in api/main.py renders the envelope.

auth/dependencies.py may import from fastapi (for Request) because this
module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import User
from auth.store import UserStore
from auth.tokens import InvalidTokenError, TokenService, subject_id
from core.errors import AuthenticationError

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def _extract_token(request: Request) -> str | None:
    token = request.cookies.get(ACCESS_COOKIE)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
    return token or None


def try_get_current_user(request: Request) -> User | None:
    """Return the authenticated User, or None. Never raises."""
    token = _extract_token(request)
    if not token:
        return None
    tokens: TokenService = request.app.state.tokens
    user_store: UserStore = request.app.state.user_store
    try:
        user_id = subject_id(tokens.verify_access_token(token))
    except InvalidTokenError:
        return None
    return user_store.get_by_id(user_id)


def get_current_user(request: Request) -> User:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    if not _extract_token(request):
        raise AuthenticationError("Unauthorized request")
    user = try_get_current_user(request)
    if user is None:
        raise AuthenticationError("Invalid access token")
    return user
