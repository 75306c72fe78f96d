from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-me"


class AppSettings(BaseSettings):
    """
    Application-level settings for the FastAPI service.

    This is separate from qms.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="QMS API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for a packaging plant quality management system: safety reporting, "
            "document control, QA inspections, non-conformances, complaints and training."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, run reference data seeding after migrations.",
    )
    SEED_ADMIN_PASSWORD: str = Field(
        default="admin123",
        description="Initial password for the seeded 'admin' account.",
    )

    # Tokens
    JWT_SECRET_KEY: str = Field(default=DEFAULT_JWT_SECRET, description="HMAC secret for JWT signing")
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60)
    REFRESH_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24 * 7)

    # Login behavior
    SUPER_ADMIN_ACCESS_CODE: str = Field(
        default="admin123",
        description="Access code that signs in as the super administrator.",
    )
    USER_EMAIL_DOMAIN: str = Field(
        default="frankston.com",
        description="Domain used for the email address of self-registered users.",
    )

    # Branding used on generated PDFs
    COMPANY_NAME: str = Field(default="FRANKSTON PACKAGING")

    LOG_LEVEL: str = Field(default="INFO")
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Deployment label (dev/test/prod). 'prod' refuses the default JWT secret."
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("CORS_ORIGINS", "CORS_ALLOW_METHODS", "CORS_ALLOW_HEADERS", mode="before")
    @classmethod
    def _split_list(cls, v):
        """Lists may be given as JSON arrays or comma-separated strings; empty means '*'."""
        if isinstance(v, str):
            v = [p.strip() for p in v.split(",") if p.strip()]
        return v or ["*"]

    @property
    def uses_default_secret(self) -> bool:
        return self.JWT_SECRET_KEY == DEFAULT_JWT_SECRET

    @property
    def is_production(self) -> bool:
        return (self.ENVIRONMENT or "").lower() in ("prod", "production")


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Read AppSettings from the environment.

    Built on every call, so tests that set environment variables see them immediately.
    """
    return AppSettings()
