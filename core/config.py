"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for VidTube happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. access_token_secret -> ACCESS_TOKEN_SECRET).

  @model_validator(mode="after"): Cross-field validation of the two token
      secrets. Dev mode generates them with a warning, production mode refuses
      to start without them.

Security notes:
  Secrets shorter than 32 chars are rejected outright.

  The access and refresh secrets must differ. A refresh token signed with the
  access secret would otherwise verify as an access token and vice versa.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, media/, or subscriptions/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("vidtube.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'vidtube.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    database_url: str = _DEFAULT_DB_URL
    host: str = "0.0.0.0"  # nosec B104 -- container deployments bind all interfaces
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:3000"]

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured".
    access_token_secret: str = ""
    refresh_token_secret: str = ""
    access_token_expire_seconds: int = 15 * 60
    refresh_token_expire_seconds: int = 10 * 24 * 3600

    secure_cookies: bool = True

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    rate_limit_storage_uri: str = "memory://"

    # ------------------------------------------------------------------
    # Media host (Cloudinary)
    # ------------------------------------------------------------------

    upload_temp_dir: str = "public/temp"
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_token_secrets(self) -> "Settings":
        """Enforce the token secret policy.

        Dev mode (DEBUG=true): auto-generate missing secrets with a warning.
            Sessions will not survive restart.

        Production mode: refuse to start if either secret is missing.

        Both modes: reject secrets shorter than 32 characters, and reject an
            access secret equal to the refresh secret.
        """
        for name in ("access_token_secret", "refresh_token_secret"):
            if not getattr(self, name):
                if not self.debug:
                    raise ValueError(
                        f"{name.upper()} is required in production mode. "
                        "Set it in your environment or .env file. "
                        "To run in development mode, set DEBUG=true."
                    )
                setattr(self, name, secrets.token_hex(32))
                logger.warning("Using auto-generated %s. Sessions will not persist across restarts.", name.upper())
            if len(getattr(self, name)) < 32:
                raise ValueError(f"{name.upper()} must be at least 32 characters.")
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
