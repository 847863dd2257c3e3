"""
api/routes/v1/users.py -- Account and session REST endpoints.

Routes:
  POST  /api/v1/users/register         -- multipart: fullname, email, username, password, avatar, coverImage?
  POST  /api/v1/users/login            -- username or email + password; sets session cookies
  POST  /api/v1/users/refresh-token    -- rotate the token pair (cookie or body refreshToken)
  POST  /api/v1/users/logout           -- clears stored refresh token and both cookies (requires auth)
  POST  /api/v1/users/change-password  -- requires auth
  GET   /api/v1/users/current-user     -- requires auth
  PATCH /api/v1/users/update-account   -- fullname + email (requires auth)
  PATCH /api/v1/users/avatar           -- multipart avatar (requires auth)
  PATCH /api/v1/users/cover-image      -- multipart coverImage (requires auth)
  GET   /api/v1/users/c/{username}     -- public channel profile

Security:
  POST /login is rate-limited per IP (Settings.login_rate_limit).
  Cache-Control: no-store on every response that carries tokens.
  Uploaded files are written under Settings.upload_temp_dir with random names
  and removed after the upload attempt.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    PASSWORD_MAX_LENGTH,
    AccountUpdate,
    ChangePasswordRequest,
    ChannelProfile,
    LoginData,
    LoginRequest,
    RefreshTokenRequest,
    TokenPairResponse,
    UserResponse,
)
from api.responses import api_response, clear_session_cookies, set_session_cookies
from auth.dependencies import REFRESH_COOKIE, get_current_user, try_get_current_user
from auth.models import User
from auth.service import AuthService
from core.config import get_settings
from core.errors import NotFoundError
from media.uploader import save_temp_file
from subscriptions.store import SubscriptionStore

# Auth policy:
# - POST  /users/register, /users/login, /users/refresh-token: public
# - GET   /users/c/{username}: public (is_subscribed is filled in when a session is present)
# - everything else: requires auth (get_current_user)
router = APIRouter(prefix="/users")


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _stash(upload: Optional[UploadFile]):
    """Write an incoming multipart file to the temp dir; None if absent."""
    if upload is None or not upload.filename:
        return None
    return save_temp_file(upload.filename, upload.file, get_settings().upload_temp_dir)


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/register", status_code=201)
def register(
    request: Request,
    fullname: str = Form(""),
    email: str = Form(""),
    username: str = Form(""),
    password: str = Form("", max_length=PASSWORD_MAX_LENGTH),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
) -> JSONResponse:
    """Create an account. The avatar file is required, the cover image is optional."""
    user = _service(request).register(
        fullname=fullname,
        email=email,
        username=username,
        password=password,
        avatar_path=_stash(avatar),
        cover_path=_stash(cover_image),
    )
    return api_response(201, UserResponse.from_user(user), "User registered successfully")


@limiter.limit(get_settings().login_rate_limit)  # brute-force mitigation
@router.post("/login")
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username or email and password; set session cookies."""
    result = _service(request).login(body.username, body.email, body.password)
    resp = api_response(
        200,
        LoginData(
            user=UserResponse.from_user(result.user),
            access_token=result.access_token,
            refresh_token=result.refresh_token,
        ),
        "User logged in successfully",
    )
    set_session_cookies(resp, result.access_token, result.refresh_token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/refresh-token")
def refresh_token(request: Request, body: Optional[RefreshTokenRequest] = None) -> JSONResponse:
    """Rotate the session. The refresh token comes from the cookie, or the
    JSON body for clients that cannot hold cookies."""
    incoming = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    pair = _service(request).refresh_access_token(incoming)
    resp = api_response(
        200,
        TokenPairResponse(access_token=pair.access_token, refresh_token=pair.refresh_token),
        "Access token refreshed",
    )
    set_session_cookies(resp, pair.access_token, pair.refresh_token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/c/{username}")
def channel_profile(request: Request, username: str) -> JSONResponse:
    """Return a user's public channel profile with subscription counts."""
    channel = request.app.state.user_store.get_by_username(username)
    if channel is None:
        raise NotFoundError("Channel does not exist")
    subscriptions: SubscriptionStore = request.app.state.subscription_store
    viewer = try_get_current_user(request)
    profile = ChannelProfile(
        id=channel.id,
        username=channel.username,
        fullname=channel.fullname,
        avatar=channel.avatar,
        cover_image=channel.cover_image,
        subscribers_count=subscriptions.count_subscribers(channel.id),
        channels_subscribed_to_count=subscriptions.count_subscribed_to(channel.id),
        is_subscribed=viewer is not None and subscriptions.is_subscribed(viewer.id, channel.id),
    )
    return api_response(200, profile, "User channel fetched successfully")


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/logout")
def logout(request: Request, current_user: User = Depends(get_current_user)) -> JSONResponse:
    """Invalidate the stored refresh token and clear both cookies."""
    _service(request).logout(current_user.id)
    resp = api_response(200, {}, "User logged out")
    clear_session_cookies(resp)
    return resp


@router.post("/change-password")
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    _service(request).change_password(current_user.id, body.old_password, body.new_password)
    return api_response(200, {}, "Password changed successfully")


@router.get("/current-user")
def read_current_user(current_user: User = Depends(get_current_user)) -> JSONResponse:
    return api_response(200, UserResponse.from_user(current_user), "Current user fetched successfully")


@router.patch("/update-account")
def update_account(
    request: Request,
    body: AccountUpdate,
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    user = _service(request).update_account_details(current_user.id, body.fullname, body.email)
    return api_response(200, UserResponse.from_user(user), "Account details updated successfully")


@router.patch("/avatar")
def update_avatar(
    request: Request,
    avatar: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    user = _service(request).update_avatar(current_user.id, _stash(avatar))
    return api_response(200, UserResponse.from_user(user), "Avatar image updated successfully")


@router.patch("/cover-image")
def update_cover_image(
    request: Request,
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    user = _service(request).update_cover_image(current_user.id, _stash(cover_image))
    return api_response(200, UserResponse.from_user(user), "Cover image updated successfully")
