"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the Storefront API happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. database_url -> DATABASE_URL). Type coercion is built in.

  @model_validator(mode="after"): Cross-field checks run once all fields are
      resolved, so a bad deployment fails at startup instead of on the first
      request that touches the misconfigured value.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or catalog/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("storefront.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'storefront.db'}"

APP_VERSION = "1.0.0"


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
    log_level: str = "INFO"
    # Mount point for the resource routers. Empty keeps /users, /products,
    # /auth at the root; set API_PREFIX=/api for the legacy layout.
    api_prefix: str = ""
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL
    # Insert the demo users/products on startup when the tables are empty.
    seed_demo_data: bool = True

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_max_age_seconds: int = 24 * 60 * 60
    bcrypt_rounds: int = 12
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Reject values that would break auth or routing at runtime.

        token_max_age_seconds <= 0 would expire every token on issue.
        bcrypt only accepts cost factors 4..31.
        api_prefix must be empty or start with "/" and not end with one, or
        FastAPI builds paths like "api/users" or "/api//users".
        """
        if self.token_max_age_seconds <= 0:
            raise ValueError("TOKEN_MAX_AGE_SECONDS must be a positive number of seconds.")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        if self.api_prefix:
            if not self.api_prefix.startswith("/") or self.api_prefix.endswith("/"):
                raise ValueError("API_PREFIX must start with '/' and must not end with '/'.")
        self.log_level = self.log_level.upper()
        if self.debug and self.log_level == "INFO":
            self.log_level = "DEBUG"
        return self

    @property
    def token_max_age_ms(self) -> int:
        return self.token_max_age_seconds * 1000


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
