"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for AuthGate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. admin_secret_key -> ADMIN_SECRET_KEY).

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Implements the DEBUG-conditional ADMIN_SECRET_KEY policy:
      dev mode falls back to the documented insecure default with a warning,
      production mode refuses to start without a real secret.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authgate.config")

# Documented insecure default. Accepted only when DEBUG=true.
INSECURE_ADMIN_SECRET = "ADMIN_SECRET_KEY"

# Relative to the working directory, never inside the source tree.
_DEFAULT_DB_URL = "sqlite:///authgate.db"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
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
    # Empty string is the sentinel for "not configured". The model_validator
    # below either substitutes the dev default or raises.
    admin_secret_key: str = ""

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL
    # Seconds a SQLite connection waits on a locked database before giving up.
    store_timeout_seconds: float = Field(default=5.0, gt=0)

    # ------------------------------------------------------------------
    # Password hashing
    # ------------------------------------------------------------------

    # bcrypt cost factor. 4 is bcrypt's floor and is only sensible in tests.
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = 3000
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_admin_secret(self) -> "Settings":
        """Enforce the ADMIN_SECRET_KEY policy.

        Dev mode (DEBUG=true): an unset secret falls back to the documented
            insecure default with a warning so local runs work out of the box.

        Production mode (DEBUG=false or not set): refuse to start if the secret
            is unset or still equals the insecure default. Anyone who has read
            the docs would otherwise be able to register admins and pass the
            destructive-operation gate.
        """
        if not self.admin_secret_key:
            if self.debug:
                self.admin_secret_key = INSECURE_ADMIN_SECRET
                logger.warning("WARNING: ADMIN_SECRET_KEY is not set. Using the insecure development default.")
            else:
                raise ValueError(
                    "ADMIN_SECRET_KEY is required in production mode. "
                    "Set ADMIN_SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        elif self.admin_secret_key == INSECURE_ADMIN_SECRET and not self.debug:
            raise ValueError("ADMIN_SECRET_KEY must be changed from the documented default in production mode.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
