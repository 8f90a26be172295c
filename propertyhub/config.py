"""
Configuration management using Pydantic settings.
Handles database URL, JWT secrets, OpenAI, SMTP and business rules from environment variables.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache
import os


class Settings(BaseSettings):
    """Application settings loaded from the environment or a .env file."""

    # Application configuration
    app_name: str = "PropertyHub API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False

    # Database configuration
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/propertyhub"
    database_pool_size: int = 10
    database_max_overflow: int = 20

    # JWT configuration
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    jwt_refresh_token_expire_days: int = 7
    allow_agent_signup: bool = False

    # File upload configuration
    upload_dir: str = "./uploads"
    upload_url_prefix: str = "/uploads"
    max_file_size: int = 5 * 1024 * 1024  # 5MB
    allowed_file_types: List[str] = ["image/jpeg", "image/jpg", "image/png", "image/webp"]
    max_images_per_property: int = 20

    # API configuration
    api_v1_prefix: str = "/api/v1"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Pagination defaults
    default_page_size: int = 20
    max_page_size: int = 100

    # OpenAI configuration for AI search
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.3
    openai_max_tokens: int = 500
    openai_timeout: float = 20.0

    # AI search thresholds
    ai_search_max_query_length: int = 500
    ai_search_min_confidence: int = 30
    ai_search_warning_confidence: int = 50
    ai_search_result_limit: int = 50
    ai_search_cache_ttl: int = 300
    ai_search_cache_max_entries: int = 1000

    # Location validation
    location_cache_ttl: int = 300
    location_similarity_threshold: float = 0.7

    # Appointment scheduling
    business_timezone: str = "America/Guayaquil"
    appointment_booking_days: int = 30

    # Email notifications
    email_enabled: bool = False
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_from_address: str = "no-reply@propertyhub.local"
    email_from_name: str = "PropertyHub"

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_sweep_interval: int = 60
    # Requests per window (seconds), per tier
    rate_limit_auth_limit: int = 10
    rate_limit_auth_window: int = 15 * 60
    rate_limit_ai_search_limit: int = 30
    rate_limit_ai_search_window: int = 60 * 60
    rate_limit_property_create_limit: int = 50
    rate_limit_property_create_window: int = 24 * 60 * 60
    rate_limit_appointment_limit: int = 20
    rate_limit_appointment_window: int = 24 * 60 * 60
    rate_limit_favorite_limit: int = 100
    rate_limit_favorite_window: int = 60 * 60
    rate_limit_default_limit: int = 100
    rate_limit_default_window: int = 60 * 60

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure an async driver is used for the configured database."""
        if not v:
            raise ValueError("DATABASE_URL is required")
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    @field_validator("jwt_secret_key", mode="before")
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

    @field_validator("upload_dir", mode="before")
    @classmethod
    def create_upload_directory(cls, v):
        """Ensure the upload directory exists."""
        if v and not os.path.exists(v):
            os.makedirs(v, exist_ok=True)
        return v

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "validate_default": True,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one instance of settings throughout the app lifecycle.
    """
    return Settings()


# Global settings instance
settings = get_settings()
