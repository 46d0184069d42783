"""
velgo/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (Supabase URL, keys, retry timings, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import List, Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # Supabase (backend-as-a-service)
    SUPABASE_URL: str = Field(
        default="http://localhost:54321",
        description="Supabase project URL"
    )
    SUPABASE_ANON_KEY: str = Field(
        default="",
        description="Public anon key sent as the apikey header"
    )
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = Field(
        default=None,
        description="Shared secret database webhooks send as their bearer token"
    )
    SUPABASE_TIMEOUT: float = Field(
        default=10.0,
        description="Backend request timeout in seconds"
    )

    # Profile loading
    PROFILE_FETCH_RETRIES: int = Field(
        default=3,
        description="Extra profile fetch attempts while the signup trigger catches up"
    )
    PROFILE_RETRY_DELAY_SECONDS: float = Field(
        default=0.5,
        description="Fixed delay between profile fetch attempts"
    )
    COMPLETION_PROFILE_RETRIES: int = Field(
        default=5,
        description="Profile fetch retries after the completion form succeeds"
    )
    GUIDE_NEW_PROFILE_MINUTES: int = Field(
        default=5,
        description="Profiles younger than this get the user guide once"
    )

    # Navigation
    SIGNOUT_EXEMPT_VIEWS: List[str] = Field(
        default=["reset-password", "change-password"],
        description="Views that are not redirected to landing when the session drops"
    )
    NAV_HISTORY_LIMIT: int = Field(
        default=100,
        description="Maximum history entries kept per tab"
    )

    # Tabs
    TAB_TIMEOUT_MINUTES: int = Field(
        default=60,
        description="Idle minutes before a tab's state is discarded"
    )
    MAX_OPEN_TABS: int = Field(
        default=10000,
        description="Maximum tabs held in memory"
    )

    # Payments (Paystack)
    PAYSTACK_PUBLIC_KEY: str = Field(
        default="",
        description="Paystack public key handed to the payment popup"
    )
    SUBSCRIPTION_DAYS: int = Field(
        default=30,
        description="Validity of a paid tier in days"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @validator("SUPABASE_SERVICE_ROLE_KEY", always=True)
    def validate_service_key(cls, v, values):
        """Ensure the service key is set in production."""
        if values.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("SUPABASE_SERVICE_ROLE_KEY is required in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.SUPABASE_URL:
        errors.append("SUPABASE_URL is required")

    if settings.PROFILE_FETCH_RETRIES < 0:
        errors.append("PROFILE_FETCH_RETRIES cannot be negative")

    # Production-specific validations
    if settings.is_production:
        if not settings.SUPABASE_ANON_KEY:
            errors.append("SUPABASE_ANON_KEY is required in production")
        if not settings.PAYSTACK_PUBLIC_KEY:
            errors.append("PAYSTACK_PUBLIC_KEY is required in production")
        if not settings.SUPABASE_SERVICE_ROLE_KEY:
            errors.append("SUPABASE_SERVICE_ROLE_KEY is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
