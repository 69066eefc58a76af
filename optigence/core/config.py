"""Configuration management for the Optigence scheduling service."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # OpenAI configuration (optional: text helpers fall back to heuristics without it)
    OPENAI_API_KEY: str | None = Field(default=None, description="OpenAI API key")
    OPENAI_MODEL: str = Field(default="gpt-4o-mini", description="Model for intent/extraction")

    # Environment
    OPTIGENCE_ENV: str = Field(default="dev", description="Environment: dev, staging, prod, test")

    # Google Calendar
    GOOGLE_CLIENT_ID: str | None = Field(default=None, description="Google OAuth client ID")
    GOOGLE_CLIENT_SECRET: str | None = Field(default=None, description="Google OAuth client secret")
    GCAL_REFRESH_TOKEN: str | None = Field(
        default=None, description="Server-level Google Calendar refresh token"
    )
    TOKEN_ENCRYPTION_KEY: str | None = Field(
        default=None, description="Key used to encrypt stored per-user refresh tokens"
    )
    GOOGLE_CALENDAR_TIMEOUT_SECONDS: float = Field(
        default=10.0, description="Timeout for Google Calendar requests"
    )

    # Slot proposals
    MAX_PROPOSED_SLOTS: int = Field(default=3, description="Default number of slots returned")

    # Text analysis cache
    TEXT_CACHE_MAX_ENTRIES: int = Field(default=512, description="Max cached intent/extraction results")
    TEXT_CACHE_TTL_SECONDS: float = Field(default=60.0, description="Lifetime of cached results")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
