"""
core/config.py -- Centralized service configuration via pydantic-settings.

All environment variable reads for the SSO service happen here. No module
should call os.getenv() or os.environ.get() directly -- entry points call
get_settings() and pass the resulting Settings object down explicitly.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call. Only entry points (api/main.py lifespan, main.py CLI) call it.
      TokenIssuer and AuthService receive the values they need through their
      constructors and never read configuration themselves.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, token_ttl_seconds -> TOKEN_TTL_SECONDS).

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Implements the DEBUG-conditional SECRET_KEY policy.

Security notes:
  Short keys: SECRET_KEY shorter than 32 chars is rejected outright. JWT signing
       relies on key entropy -- a short key makes forged tokens feasible.

  Missing key: in production mode (DEBUG not set or false), a missing SECRET_KEY is a
       hard startup failure. Every app trusting this service verifies tokens
       with the same key, so a random per-process key would break them all.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sso.config")


class Settings(BaseSettings):
    """Service settings loaded from environment variables and .env file.

    All fields except the signing key have defaults so Settings() can be
    instantiated in test environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    env: Literal["local", "dev", "prod"] = "local"
    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = Field(default="", repr=False)

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    token_ttl_seconds: int = Field(default=3600, gt=0)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    storage_path: str = "./storage/sso.db"
    # SQLite busy timeout. Bounds how long a store call waits on a locked DB.
    storage_timeout_seconds: float = Field(default=5.0, gt=0)

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = 44044
    # Deadline for one service call made by the request boundary.
    request_timeout_seconds: float = Field(default=10.0, gt=0)
    allowed_hosts: list[str] = ["*"]

    @property
    def token_ttl(self) -> timedelta:
        return timedelta(seconds=self.token_ttl_seconds)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Issued tokens stop verifying after a restart -- acceptable for
            local development only.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated SECRET_KEY. " "Issued tokens will not verify across restarts."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the service Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
