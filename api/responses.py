"""
api/responses.py -- Envelope and session-cookie helpers shared by the routers.

Every JSON body the API returns goes through api_response() (success) or the
exception handlers in api/main.py (errors), so clients always see
{statusCode, data, message, success}.
"""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.models import ApiResponse
from auth.dependencies import ACCESS_COOKIE, REFRESH_COOKIE
from core.config import get_settings


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True)
    if isinstance(data, list):
        return [_dump(item) for item in data]
    return data


def api_response(status_code: int, data: Any, message: str) -> JSONResponse:
    """Wrap data in the standard envelope and return a JSONResponse."""
    body = ApiResponse(status_code=status_code, data=_dump(data), message=message, success=status_code < 400)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


def set_session_cookies(response: JSONResponse, access_token: str, refresh_token: str) -> None:
    """Write both tokens as httpOnly cookies on the response.

    httponly=True: JS cannot read the cookies (XSS mitigation).
    secure: only sent over HTTPS unless SECURE_COOKIES=false (local dev).
    max_age: matches the matching token's expiry so both expire together.
    """
    settings = get_settings()
    response.set_cookie(
        ACCESS_COOKIE,
        value=access_token,
        httponly=True,
        secure=settings.secure_cookies,
        max_age=settings.access_token_expire_seconds,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        value=refresh_token,
        httponly=True,
        secure=settings.secure_cookies,
        max_age=settings.refresh_token_expire_seconds,
    )


def clear_session_cookies(response: JSONResponse) -> None:
    settings = get_settings()
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(name, httponly=True, secure=settings.secure_cookies)
