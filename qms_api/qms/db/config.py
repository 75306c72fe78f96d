from __future__ import annotations

import re
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./qms.db"


class Settings(BaseSettings):
    """
    Database connection settings.

    The URL is resolved in this order:
      1. DATABASE_URL, any SQLAlchemy URL (SQLite or PostgreSQL)
      2. POSTGRES_URL
      3. POSTGRES_USER / POSTGRES_PASSWORD / POSTGRES_DB with POSTGRES_HOST and POSTGRES_PORT
      4. a local SQLite file, ./qms.db
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DATABASE_URL: Optional[str] = Field(default=None, description="Full SQLAlchemy URL")
    POSTGRES_URL: Optional[str] = Field(default=None, description="Full PostgreSQL URL")
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432

    SQL_ECHO: bool = Field(default=False, description="Log every SQL statement")
    DB_POOL_SIZE: int = Field(default=5, ge=1, description="PostgreSQL connection pool size")
    DB_MAX_OVERFLOW: int = Field(default=10, ge=0, description="Connections allowed above the pool size")

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.POSTGRES_URL:
            return self.POSTGRES_URL
        parts = (self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_DB)
        if any(parts) and not all(parts):
            raise ValueError("POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB must be set together.")
        if all(parts):
            return (
                f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )
        return DEFAULT_DATABASE_URL

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def async_database_url(self) -> str:
        """The URL with an async driver (aiosqlite or asyncpg) for the AsyncEngine."""
        url = self.database_url
        if self.is_sqlite:
            return re.sub(r"^sqlite(\+\w+)?://", "sqlite+aiosqlite://", url)
        return re.sub(r"^postgres(ql)?(\+\w+)?://", "postgresql+asyncpg://", url)

    @property
    def sync_database_url(self) -> str:
        """The URL with the default sync driver, for Alembic offline mode."""
        url = self.database_url
        if self.is_sqlite:
            return re.sub(r"^sqlite\+\w+://", "sqlite://", url)
        return re.sub(r"^postgres(ql)?(\+\w+)?://", "postgresql://", url)


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Read database settings from the environment."""
    return Settings()
