"""
Configuration management using Pydantic settings.
Handles backend selection, storage, auth and route guard settings from environment variables.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application configuration
    app_name: str = "Student Housing Listings"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    testing: bool = False

    # Backend selection: "local" runs the bundled SQL/file backend, "remote" talks to a hosted one
    backend_mode: str = "local"
    backend_url: str = "http://localhost:54321"
    backend_anon_key: str = ""

    # Local backend configuration
    database_url: str = "sqlite+aiosqlite:///./housing.db"
    storage_dir: str = "./storage"
    storage_public_path: str = "/storage"
    storage_bucket: str = "properties"
    seed_amenities: bool = True

    # JWT configuration (local backend auth)
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    jwt_refresh_token_expire_days: int = 7

    # Listing configuration
    max_image_size: int = 5 * 1024 * 1024  # 5MiB
    placeholder_image_url: str = "/static/placeholder.svg"
    default_latitude: float = -12.80532
    default_longitude: float = 28.24403
    currency: str = "ZMW"
    latest_listings_limit: int = 6
    rollback_partial_listings: bool = True

    # Route guard configuration
    protected_prefix: str = "/dashboard"
    landlord_only_paths: List[str] = ["/dashboard/new"]
    sign_in_path: str = "/sign-in"
    dashboard_path: str = "/dashboard"
    guard_fail_open: bool = True

    # Cookies and sessions
    access_cookie_name: str = "sb-access-token"
    refresh_cookie_name: str = "sb-refresh-token"
    session_secret_key: str = "change-this-session-secret"

    # API configuration
    api_v1_prefix: str = "/api/v1"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8000"]
    max_request_size: int = 1024 * 1024  # 1MiB for forms and JSON
    max_upload_size: int = 50 * 1024 * 1024  # 50MiB for listing submissions

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("backend_mode")
    @classmethod
    def validate_backend_mode(cls, v):
        """Validate backend mode."""
        allowed_modes = ["local", "remote"]
        if v not in allowed_modes:
            raise ValueError(f"Backend mode must be one of: {allowed_modes}")
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure an async driver is used."""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v.startswith("sqlite:///"):
            return v.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return v

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v):
        """Validate JWT secret key strength."""
        if not v:
            raise ValueError("JWT_SECRET_KEY is required")
        if len(v) < 32 and v != "your-secret-key-change-in-production":
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters long")
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @field_validator("backend_url", "storage_public_path")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing" or self.testing

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def uses_local_backend(self) -> bool:
        return self.backend_mode == "local"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one instance of settings throughout the app lifecycle.
    """
    return Settings()
