"""
API request and response models for VidTube REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
subscriptions/models.py, which own the internal domain representation.

JSON keys are camelCase (statusCode, coverImage, refreshToken) for
compatibility with existing web clients. Request models accept the snake_case
field names too (populate_by_name).

UserResponse is the ONLY shape in which a user leaves the API. It has no
password hash or refresh token field, so a secret cannot be serialized by
accident.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from auth.models import User
from subscriptions.models import Subscription

# bcrypt rejects passwords longer than 72 bytes.
PASSWORD_MAX_LENGTH = 72

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)
_CAMEL_FROZEN = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class ApiResponse(BaseModel):
    """Success envelope: {statusCode, data, message, success}."""

    model_config = _CAMEL_FROZEN

    status_code: int
    data: Any = None
    message: str = "Success"
    success: bool = True


class ErrorResponse(BaseModel):
    """Error envelope returned on 4xx/5xx responses. Same keys as ApiResponse
    plus the list of field-level errors (empty for most errors)."""

    model_config = _CAMEL_FROZEN

    status_code: int
    data: None = None
    message: str
    success: bool = False
    errors: list[Any] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Either username or email identifies the account."""

    model_config = _CAMEL

    username: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    # Passwords are compared exactly as registered, surrounding spaces included.
    password: str = Field(default="", max_length=PASSWORD_MAX_LENGTH)

    @field_validator("username", "email")
    @classmethod
    def strip_identifier(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else None


class RefreshTokenRequest(BaseModel):
    model_config = _CAMEL

    refresh_token: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    model_config = _CAMEL

    old_password: str = Field(default="", max_length=PASSWORD_MAX_LENGTH)
    new_password: str = Field(default="", max_length=PASSWORD_MAX_LENGTH)


class AccountUpdate(BaseModel):
    model_config = _CAMEL

    fullname: str = Field(default="", max_length=255)
    email: str = Field(default="", max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user. Secrets are not part of the model."""

    model_config = _CAMEL_FROZEN

    id: int
    username: str
    email: str
    fullname: str
    avatar: str
    cover_image: str = ""
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            fullname=user.fullname,
            avatar=user.avatar,
            cover_image=user.cover_image,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class TokenPairResponse(BaseModel):
    model_config = _CAMEL_FROZEN

    access_token: str
    refresh_token: str


class LoginData(BaseModel):
    model_config = _CAMEL_FROZEN

    user: UserResponse
    access_token: str
    refresh_token: str


class ChannelProfile(BaseModel):
    """A user seen as a channel, with subscription counts.

    is_subscribed is relative to the caller and False for anonymous callers.
    """

    model_config = _CAMEL_FROZEN

    id: int
    username: str
    fullname: str
    avatar: str
    cover_image: str = ""
    subscribers_count: int = 0
    channels_subscribed_to_count: int = 0
    is_subscribed: bool = False


class SubscriptionResponse(BaseModel):
    model_config = _CAMEL_FROZEN

    id: int
    subscriber_id: int
    channel_id: int
    created_at: str

    @classmethod
    def from_subscription(cls, sub: Subscription) -> "SubscriptionResponse":
        return cls(
            id=sub.id,
            subscriber_id=sub.subscriber_id,
            channel_id=sub.channel_id,
            created_at=sub.created_at,
        )


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
