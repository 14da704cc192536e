"""
Configuration Module
====================

Environment-driven settings and the fixed vocabularies (categories,
priorities, statuses, roles) shared by every layer.
"""

from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings read from the environment and an optional .env file.

    DATABASE_URL, IDENTITY_URL and IDENTITY_API_KEY are required at startup;
    see ``missing_required``.
    """

    # ========== Application ==========
    app_name: str = Field(default="request-desk", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: Optional[str] = Field(
        default=None,
        description="Async SQLAlchemy connection URL, e.g. postgresql+asyncpg://host/requests"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Identity Provider ==========
    identity_url: Optional[str] = Field(
        default=None,
        description="Base URL of the GoTrue-compatible identity provider"
    )
    identity_api_key: Optional[str] = Field(
        default=None,
        description="Public (anon) API key sent to the identity provider"
    )
    identity_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for identity provider calls",
        ge=0.1,
        le=30
    )

    # ========== Access Policy ==========
    allow_handler_signup: bool = Field(
        default=True,
        description="Let new users pick the handler role at sign-up; disable once handlers are provisioned"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    def missing_required(self) -> List[str]:
        """Names of settings the service cannot start without."""
        required = ("database_url", "identity_url", "identity_api_key")
        return [name for name in required if not getattr(self, name)]


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Category(str, Enum):
    """Request categories assigned by the classifier."""
    IT = "IT and Technical Support"
    FACILITIES = "Facilities and Maintenance"
    EQUIPMENT = "Equipment and Furniture"
    SAFETY = "Safety and Fire Protection"
    HR = "HR and Staff Matters"
    OTHER = "Other"


class Priority(str, Enum):
    """Request priority levels."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RequestStatus(str, Enum):
    """Request lifecycle statuses."""
    RECEIVED = "Received"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"


class Role(str, Enum):
    """User roles."""
    SUBMITTER = "submitter"
    HANDLER = "handler"


# ========== Lists for validation ==========

# Feeds the CHECK constraint on user_roles.role
ROLES = [r.value for r in Role]
