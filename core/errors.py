"""
core/errors.py -- Error taxonomy shared by the stores, services and API layer.

Every error carries an HTTP status code and a caller-facing message. The API
layer converts any ApiError into the standard JSON envelope in one exception
handler (api/main.py), so stores and services raise these directly instead of
building HTTP responses.

Layer rule: no imports from api/, auth/, media/, or subscriptions/.
"""

from __future__ import annotations


class ApiError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None, errors: list | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class ValidationError(ApiError):
    """A required field is missing or blank."""

    status_code = 400
    default_message = "All fields are required"


class UploadError(ApiError):
    """The media host did not return a usable URL."""

    status_code = 400
    default_message = "Error while uploading file"


class AuthenticationError(ApiError):
    """Bad password, or a missing, invalid, expired or reused token."""

    status_code = 401
    default_message = "Unauthorized request"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    """Username or email already taken."""

    status_code = 409
    default_message = "User with email or username already exists"


class TokenGenerationError(ApiError):
    """Unexpected failure while signing or persisting tokens."""

    status_code = 500
    default_message = "Error generating refresh & access tokens"
