"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the portal happen here. No module should
call os.getenv() or os.environ.get() directly.

get_settings() builds Settings once and caches it. Only the composition roots
(asgi.py, manage.py) call it; everything below them receives the Settings
instance explicitly (create_app() stores it on app.state.settings).

Security notes:
  Secrets shorter than 32 chars are rejected outright. JWT signing and the
  signed session cookie both rely on key entropy.

  In production (ENVIRONMENT=production) a missing JWT_SECRET or
  SESSION_SECRET is a hard startup failure. Anywhere else a random secret is
  generated with a warning and sessions do not survive a restart.

Layer rule: core/ is the kernel. This module may not import from api/, web/
or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("oak.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'oak_users.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. Field names map to upper-cased
    environment variables (jwt_secret -> JWT_SECRET).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    environment: str = "development"
    # Empty string means "not configured"; the validator below fills or rejects it.
    jwt_secret: str = ""
    session_secret: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_ttl_seconds: int = 3600
    bcrypt_rounds: int = 10

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = ["http://localhost", "http://localhost:5000", "http://127.0.0.1"]
    port: int = 5000

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def secure_cookies(self) -> bool:
        """The token cookie carries the Secure flag only in production."""
        return self.is_production

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Fill or reject JWT_SECRET and SESSION_SECRET.

        Development: a missing secret is replaced by a random one and a
        warning is logged. Production: a missing secret raises ValueError so
        the process refuses to start. Both: secrets must be >= 32 chars.
        """
        for field in ("jwt_secret", "session_secret"):
            value = getattr(self, field)
            env_name = field.upper()
            if not value:
                if self.is_production:
                    raise ValueError(
                        f"{env_name} is required in production. "
                        f"Set {env_name} in your environment or .env file."
                    )
                setattr(self, field, secrets.token_hex(32))
                logger.warning("Using auto-generated %s. Sessions will not persist across restarts.", env_name)
            elif len(value) < 32:
                raise ValueError(f"{env_name} must be at least 32 characters.")
        if self.bcrypt_rounds < 4 or self.bcrypt_rounds > 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, built on first call.

    In tests: build Settings(...) directly, or call get_settings.cache_clear()
    after changing environment variables.
    """
    return Settings()
