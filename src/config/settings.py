"""Application Settings - Pydantic Settings for environment configuration."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are loaded from .env file or environment variables.
    Validation is automatic via Pydantic.
    """

    # Database (Supabase)
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_key: str = ""

    # Evolution API (WhatsApp)
    evolution_api_url: str = "http://localhost:8080"
    evolution_api_key: str = ""
    evolution_instance_name: str = "default"

    # Redis (rate limiting)
    redis_url: str = "redis://localhost:6379"

    # Auth
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    auth_cookie_name: str = "auth"
    session_days: int = 30
    two_factor_token_minutes: int = 5

    # One-time codes (WhatsApp)
    otp_length: int = 6
    otp_ttl_minutes: int = 10
    otp_max_attempts: int = 5
    otp_send_limit: int = 5
    otp_send_window_seconds: int = 600

    # TOTP
    totp_issuer: str = "Booky"
    totp_valid_window: int = 1

    # Scheduling
    business_timezone: str = "America/Sao_Paulo"
    slot_minutes: int = 30
    default_open_time: str = "08:00"
    default_close_time: str = "20:00"

    # Rate limiting
    rate_limit_requests: int = 20
    rate_limit_window_seconds: int = 60

    # Observability
    otlp_endpoint: str = "http://localhost:4318/v1/traces"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    api_port: int = 8000
    api_host: str = "0.0.0.0"

    # Feature Flags
    enable_tracing: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache for performance - settings are loaded once.
    """
    return Settings()
