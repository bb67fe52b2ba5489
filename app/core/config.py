"""
Application configuration settings.

Central configuration module using Pydantic BaseSettings with environment variable support.
Loads from .env file and environment variables.
"""
import json
import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import quote_plus

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file if it exists (python-dotenv)
env_path = Path(".env")
if env_path.exists():
    load_dotenv(dotenv_path=env_path)


def _parse_list(v):
    """Parse a list setting given as JSON or as a comma-separated string."""
    if isinstance(v, str):
        try:
            return json.loads(v)
        except json.JSONDecodeError:
            return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App settings
    APP_NAME: str = "MDA Training Authorization"
    APP_ENV: str = Field(default="local")
    DEBUG: bool = Field(default=False)

    # Database settings - full connection string (highest priority)
    DATABASE_URL: Optional[str] = Field(
        default=None,
        description="Database connection URL",
    )

    # Postgres component settings (fallback when DATABASE_URL is not set)
    POSTGRES_USER: Optional[str] = Field(default=None)
    POSTGRES_PASSWORD: Optional[str] = Field(default=None)
    POSTGRES_HOST: Optional[str] = Field(default=None)
    POSTGRES_PORT: str = Field(default="5432")
    POSTGRES_DB: str = Field(default="mda_training")

    @property
    def sqlalchemy_database_uri(self) -> str:
        """
        Build SQLAlchemy database URI with priority:
        1. DATABASE_URL
        2. Postgres component vars (POSTGRES_*)
        3. SQLite (local development)
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        if os.getenv("POSTGRES_HOST") and self.POSTGRES_USER and self.POSTGRES_PASSWORD:
            password = quote_plus(self.POSTGRES_PASSWORD)
            return (
                f"postgresql+psycopg2://"
                f"{self.POSTGRES_USER}:{password}@"
                f"{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )

        return "sqlite:///./mda_training.db"

    # CORS settings
    CORS_ORIGINS: Union[str, List[str]] = Field(
        default='["http://localhost:5173", "http://localhost:3000"]',
    )

    @field_validator("CORS_ORIGINS")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from string or list."""
        return _parse_list(v)

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    LOG_DIR: str = Field(default="logs", description="Directory for the rotating log file")

    # Authorization
    ADMIN_EMAILS: Union[str, List[str]] = Field(
        default='["snir@snir-ai.com"]',
        description="Emails that are given the admin role when their user is created",
    )
    ROUTE_DEFAULT_POLICY: str = Field(
        default="allow",
        description="Access to non-public routes without a registered permission: 'allow' or 'deny'",
    )
    USER_ID_HEADER: str = Field(
        default="X-User-ID",
        description="Request header carrying the authenticated user id",
    )

    @field_validator("ADMIN_EMAILS")
    @classmethod
    def parse_admin_emails(cls, v):
        """Parse ADMIN_EMAILS and lower-case every address."""
        return [e.lower() for e in _parse_list(v)]

    @field_validator("ROUTE_DEFAULT_POLICY")
    @classmethod
    def validate_route_policy(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("allow", "deny"):
            raise ValueError("ROUTE_DEFAULT_POLICY must be 'allow' or 'deny'")
        return v

    def is_admin_email(self, email: Optional[str]) -> bool:
        """Check if an email is configured as an administrator."""
        return bool(email) and email.lower() in self.ADMIN_EMAILS


# Create global settings instance
@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

settings = get_settings()
