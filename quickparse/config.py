"""Configuration management for the quick-parse service.

This module uses Pydantic Settings to load configuration from environment
variables. All settings are validated at startup to catch configuration
errors early. Supabase is optional: without it the parser, formatter and
validator still work, only lecture-scoped group-id allocation is disabled.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Sensitive values (database credentials) must be provided via
    environment variables or .env file.
    """

    # Supabase Configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (read access to existing questions)"
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase anonymous key"
    )
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key (bypasses RLS when set)"
    )
    questions_table: str = Field(
        default="questions",
        description="Table holding lecture questions and their group numbers"
    )

    # Parser Configuration
    max_input_chars: int = Field(
        default=100_000,
        ge=1,
        le=1_000_000,
        description="Maximum length of pasted text accepted by the API"
    )
    multiline_statements: bool = Field(
        default=True,
        description="Keep statement line breaks instead of joining lines with spaces"
    )

    # HTTP Configuration
    trusted_proxies: str = Field(
        default="",
        description="Comma-separated proxy IPs allowed to set X-Forwarded-For"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate that the Supabase URL, when set, is properly formatted."""
        if v is None or not v.strip():
            return None

        url = v.strip()
        if not url.startswith("https://"):
            raise ValueError(
                "SUPABASE_URL must start with https:// "
                f"(got: {url[:20]}...)"
            )

        return url

    @field_validator("supabase_key", "supabase_service_role_key")
    @classmethod
    def validate_supabase_key(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that LOG_LEVEL names a standard logging level."""
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be a logging level name (got: {v})")
        return level

    @property
    def supabase_configured(self) -> bool:
        """True when a URL and at least one key are available."""
        return bool(self.supabase_url and (self.supabase_service_role_key or self.supabase_key))

    @property
    def trusted_proxy_list(self) -> List[str]:
        return [ip.strip() for ip in self.trusted_proxies.split(",") if ip.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance.

    This function uses lru_cache to ensure settings are loaded only once
    and reused across the application lifetime.

    Returns:
        Settings: Validated application settings

    Raises:
        ValueError: If environment variables are invalid
    """
    return Settings()
