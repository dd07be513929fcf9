"""Application configuration using Pydantic Settings.

Environment variables are loaded with the DASHSYNC_ prefix, e.g.
DASHSYNC_API_BASE_URL or DASHSYNC_SEARCH_DEBOUNCE_MS.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dashsync.core.constants import Timings


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Pattern: Pydantic Settings with Environment Variables
    """

    # Service configuration
    service_name: str = "dashsync"
    environment: str = Field(default="development", description="Runtime environment")
    log_level: str = Field(default="INFO", description="Logging level")

    # Dashboard API
    api_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the dashboard API (entity and mutation endpoints)"
    )
    http_timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP request timeout")

    # Query cache defaults
    default_stale_time_ms: int = Field(
        default=Timings.STALE_TIME_MS,
        ge=0,
        description="How long fetched data is trusted without revalidation"
    )
    default_gc_time_ms: int = Field(
        default=Timings.GC_TIME_MS,
        ge=0,
        description="Grace period before an unsubscribed entry is evicted"
    )
    default_refetch_interval_ms: Optional[int] = Field(
        default=None,
        gt=0,
        description="Background polling interval; None disables polling"
    )
    refetch_on_focus: bool = Field(
        default=True,
        description="Revalidate subscribed queries when the view regains focus"
    )

    # Search-to-navigation sync
    search_debounce_ms: int = Field(
        default=Timings.SEARCH_DEBOUNCE_MS, ge=0, description="Search input debounce delay"
    )
    search_param: str = Field(default="search", min_length=1)
    page_param: str = Field(default="page", min_length=1)
    first_page: str = Field(default="1", min_length=1)

    model_config = SettingsConfigDict(
        env_prefix="DASHSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton
    """
    return Settings()
