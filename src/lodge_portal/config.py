"""
Application configuration with environment-driven settings.

Covers the hosted backend connection (Supabase auth, REST and functions
endpoints), per-operation timeouts and the route targets used by the guard.
"""

from enum import Enum
from functools import lru_cache
import os
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderType(str, Enum):
    """Backend adapter selection."""

    SUPABASE = "supabase"
    MEMORY = "memory"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "lodge-portal"
    app_env: Literal["dev", "qa", "uat", "prod"] = "dev"
    debug: bool = False
    log_level: str = "INFO"

    # Hosted backend
    supabase_url: str = Field(
        default="http://localhost:54321",
        description="Base URL of the Supabase project",
    )
    supabase_anon_key: str = Field(
        default="",
        description="Public anon key sent as the apikey header",
    )
    supabase_service_role_key: str = Field(
        default="",
        description="Service role key, only used by the privileged endpoint",
    )
    supabase_jwt_secret: str = Field(
        default="change-me-in-production-use-secrets-manager",
        description="Secret used to verify Supabase access tokens",
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_audience: str = Field(default="authenticated")

    session_provider: ProviderType = Field(default=ProviderType.SUPABASE)
    data_store_provider: ProviderType = Field(default=ProviderType.SUPABASE)

    delete_user_function_url: str = Field(
        default="",
        description="Privileged delete-user endpoint; derived from supabase_url when empty",
    )

    # Timeouts (seconds)
    probe_timeout_seconds: float = Field(default=3.0, gt=0, le=30)
    quick_read_timeout_seconds: float = Field(default=10.0, gt=0, le=120)
    write_timeout_seconds: float = Field(default=60.0, gt=0, le=300)
    bulk_read_timeout_seconds: float = Field(default=90.0, gt=0, le=600)
    http_timeout_seconds: float = Field(default=30.0, gt=0, le=600)

    # Route targets
    login_path: str = "/login"
    pending_path: str = "/pending"
    members_path: str = "/members"
    password_reset_path: str = "/reset-password"

    # CORS
    cors_origins: str = Field(
        default="http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )

    @field_validator("supabase_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def auth_url(self) -> str:
        return f"{self.supabase_url}/auth/v1"

    @property
    def rest_url(self) -> str:
        return f"{self.supabase_url}/rest/v1"

    @property
    def delete_user_url(self) -> str:
        return self.delete_user_function_url or f"{self.supabase_url}/functions/v1/delete-user"


@lru_cache
def _get_settings_cached() -> Settings:
    return Settings()


def get_settings() -> Settings:
    # Under pytest, env vars change between tests; don't freeze a Settings instance.
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return Settings()
    return _get_settings_cached()
