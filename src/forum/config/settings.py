from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from pathlib import Path
from typing import Literal
from functools import lru_cache
from ..validators.config_validators import (
    ensure_non_negative,
    normalize_base_url,
    normalize_log_format,
    normalize_log_level,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment.
    """

    # Environment
    ENV: Literal["development", "testing", "staging", "production"] = "development"

    # Database configuration
    POSTGRES_DRIVER: str = "asyncpg"
    POSTGRES_USERNAME: str = "forum"
    POSTGRES_PASSWORD: str = "forum"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "forum"

    # Test database configuration
    TEST_POSTGRES_DB: str | None = None
    TESTING: bool = False

    # Full URL override (e.g. "sqlite+aiosqlite:///./forum.db"); wins over POSTGRES_* parts
    DATABASE_URL_OVERRIDE: str | None = None

    # SQLAlchemy
    SQLALCHEMY_ECHO: bool = False

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_TO_STDOUT: bool = True
    LOG_DIR: Path = Path("/var/log/forum")
    LOG_MAX_BYTES: int = 10_000_000  # 10 MB
    LOG_BACKUP_COUNT: int = 5
    ENABLE_SQL_LOGGING: bool = False

    # Public base URL used when building links inside notifications
    HOST: str = "http://localhost:3000"

    # Conversations
    CONVERSATION_ABUSE_THRESHOLD: int = 5    # disable once report count is strictly greater
    MESSAGE_PAGE_SIZE: int = 100
    POPULAR_WINDOW_DAYS: int = 30
    POPULAR_LIMIT: int = 10

    # --- Derived settings ---
    @property
    def DATABASE_URL(self) -> str:
        """
        Return the database URL for the current environment.

        - `DATABASE_URL_OVERRIDE` is used verbatim when set.
        - With `TESTING=True` and `TEST_POSTGRES_DB` set, the test database name is used so
          test runs never touch the regular database.
        - Otherwise the URL is assembled from the POSTGRES_* parts.
        """
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE

        db_name = self.POSTGRES_DB
        if self.TESTING and self.TEST_POSTGRES_DB:
            db_name = self.TEST_POSTGRES_DB

        return (
            f"postgresql+{self.POSTGRES_DRIVER}://"
            f"{self.POSTGRES_USERNAME}:{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/"
            f"{db_name}"
        )

    # --- Validators ---
    @field_validator("LOG_LEVEL", mode="before")
    def clean_log_level(cls, v: str | None) -> str | None:
        """
        Normalize LOG_LEVEL to uppercase before Literal validation, so "debug" is accepted.
        """
        return normalize_log_level(v)

    @field_validator("LOG_FORMAT", mode="before")
    def clean_log_format(cls, v: str | None) -> str | None:
        """
        Normalize the LOG_FORMAT environment variable value to lowercase.
        """
        return normalize_log_format(v)

    @field_validator("HOST", mode="before")
    def normalize_host(cls, v: str | None) -> str | None:
        return normalize_base_url(v)

    @field_validator("CONVERSATION_ABUSE_THRESHOLD", "MESSAGE_PAGE_SIZE", "POPULAR_WINDOW_DAYS", "POPULAR_LIMIT")
    def must_not_be_negative(cls, v: int) -> int:
        return ensure_non_negative(v)

    model_config = SettingsConfigDict(
        # .env sits next to the package root (src/forum/.env)
        env_file=str(Path(__file__).parent.parent / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


# get_settings() takes no arguments and always returns the same settings from the environment,
# so caching it with @lru_cache() avoids re-reading the .env file on every call.
@lru_cache()
def get_settings() -> Settings:
    return Settings()
