"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Inkwell happen here. No module should
call os.getenv() or os.environ.get() directly.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Only the
      process assembly code (api/main.py lifespan) calls it. Components that
      need configuration (TokenIssuer, GoogleIdentityVerifier,
      AccountReconciler) receive the Settings object as a constructor argument
      and never look it up themselves.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. bcrypt_rounds -> BCRYPT_ROUNDS). A few fields keep the env var names
      the deployment already uses (SECRET_ACCESS_KEY, DB_LOCATION) via
      validation_alias.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Dev mode generates a key with a warning,
      production mode refuses to start without one.

Security notes:
  SECRET_ACCESS_KEY shorter than 32 chars is rejected outright. Session tokens
  carry no expiry, so the signing key is the only thing standing between a
  forged token and a valid session.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or blogs/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("inkwell.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'inkwell.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. populate_by_name lets tests pass
    Settings(secret_key=...) even where the env var name differs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = Field(default="", validation_alias=AliasChoices("SECRET_ACCESS_KEY", "secret_key"))
    database_url: str = Field(default=_DEFAULT_DB_URL, validation_alias=AliasChoices("DB_LOCATION", "database_url"))

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # bcrypt cost factor. 10 keeps a hash in the tens of milliseconds on
    # commodity hardware; tests drop it to 4 (bcrypt's minimum).
    bcrypt_rounds: int = Field(default=10, ge=4, le=16)

    # Firebase project that issues the Google ID tokens the frontend sends to
    # /google-auth. Empty string disables federated login: every assertion
    # is rejected because no audience can match.
    firebase_project_id: str = ""

    # Upper bound for storage calls and identity-provider key fetches.
    request_timeout_seconds: float = Field(default=5.0, gt=0)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_ACCESS_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if the key
            is missing. A random key in production would silently log every
            user out on each restart.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated SECRET_ACCESS_KEY. " "Sessions will not persist across restarts."
                )
            else:
                raise ValueError(
                    "SECRET_ACCESS_KEY is required in production mode. "
                    "Set SECRET_ACCESS_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_ACCESS_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Call this once while assembling the process and pass the result down.
    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
