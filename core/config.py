"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Biblio happen here. No module should call
os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Settings
      are loaded once at process start and treated as immutable afterwards.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. token_secret -> TOKEN_SECRET).

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. Dev mode (DEBUG=true) generates missing secrets with a warning;
      production mode refuses to start without them.

Security notes:
  [M6] Secrets shorter than 32 chars are rejected outright. JWT signing and
       session cookie signing both rely on key entropy.

  [M7] In production mode a missing TOKEN_SECRET or SESSION_SECRET is a hard
       startup failure.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or catalog/.
"""

import logging
import re
import secrets
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Union

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("biblio.config")

# "1d", "12h", "30m", "45s", "2w" -- same shorthand the token expiry has
# always been configured with. A bare integer means seconds.
_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS: dict[str, int] = {
    "": 1,
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
}


def parse_duration(value: Union[str, int]) -> timedelta:
    """Convert a duration shorthand ("1d", "12h", 3600) into a timedelta.

    Raises ValueError for anything that is not a positive duration.
    """
    if isinstance(value, int):
        seconds = value
    else:
        match = _DURATION_RE.match(value)
        if match is None:
            raise ValueError(f"Invalid duration {value!r}. Expected e.g. '1d', '12h', '30m' or seconds.")
        seconds = int(match.group(1)) * _DURATION_UNITS[match.group(2)]
    if seconds <= 0:
        raise ValueError("Duration must be positive.")
    return timedelta(seconds=seconds)


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
    host: str = "127.0.0.1"
    port: int = 3000
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev secret or raises, so callers never see "".
    session_secret: str = ""

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    # Full SQLAlchemy URL. When empty, a SQLite file named after
    # database_name is created in the working directory.
    database_url: str = ""
    database_name: str = "biblio"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_secret: str = ""
    token_expires_in: str = "1d"
    bcrypt_rounds: int = 10

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    allowed_hosts: list[str] = ["*"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("token_expires_in")
    @classmethod
    def validate_token_expiry(cls, value: str) -> str:
        parse_duration(value)
        return value

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, value: int) -> int:
        # bcrypt only accepts log2 cost factors in this range.
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return value

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce the secret policy for TOKEN_SECRET and SESSION_SECRET [M6][M7].

        Dev mode (DEBUG=true): auto-generate a random secret with a warning.
            Tokens and sessions will not survive restart.

        Production mode: refuse to start if a secret is missing.

        Both modes: reject secrets shorter than 32 characters.
        """
        for name in ("token_secret", "session_secret"):
            value = getattr(self, name)
            if not value:
                if self.debug:
                    value = secrets.token_hex(32)
                    setattr(self, name, value)
                    logger.warning(
                        "WARNING: Using auto-generated %s. Issued credentials will not persist across restarts.",
                        name.upper(),
                    )
                else:
                    raise ValueError(
                        f"{name.upper()} is required in production mode. "
                        f"Set {name.upper()} in your environment or .env file. "
                        "To run in development mode, set DEBUG=true."
                    )
            if len(value) < 32:
                raise ValueError(f"{name.upper()} must be at least 32 characters.")
        return self

    @property
    def effective_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{Path.cwd() / f'{self.database_name}.db'}"

    @property
    def token_lifetime(self) -> timedelta:
        return parse_duration(self.token_expires_in)


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
