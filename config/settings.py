"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: Optional[str] = Field(
        None,
        description="Supabase project URL"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase anon/public key"
    )

    # ===================
    # CATALOG
    # ===================
    menu_items_table: str = Field(
        default="menu_items",
        min_length=1,
        description="Table holding menu items with embedded variants, pricing and supplements"
    )
    drinks_category: str = Field(
        default="drinks",
        min_length=1,
        description="Menu category that holds the restaurant's drinks"
    )
    special_pack_keywords: list[str] = Field(
        default=["pack", "combo", "special"],
        description="Category keywords that mark an item as a special pack"
    )

    # ===================
    # CONFIGURATOR
    # ===================
    validation_error_clear_seconds: int = Field(
        default=5,
        ge=1,
        le=60,
        description="Seconds before a displayed validation failure auto-clears"
    )
    max_item_quantity: int = Field(
        default=99,
        ge=1,
        le=999,
        description="Upper bound for the overall item quantity"
    )
    session_idle_ttl_seconds: int = Field(
        default=3600,
        ge=60,
        description="Open sessions untouched for this long are closed on the next sweep"
    )
    closed_session_retention: int = Field(
        default=256,
        ge=0,
        le=10000,
        description="How many closed session ids are remembered to answer with 'closed'"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def supabase_configured(self) -> bool:
        """Check if the Supabase backend is configured."""
        return bool(self.supabase_url and self.supabase_key)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
