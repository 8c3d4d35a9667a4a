"""Runtime settings loading and validation."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    CACHE_DEPTH,
    FEED_MAX_ATTEMPTS,
    FEED_TIMEOUT_SECONDS,
    MIN_TIER_ARTICLES,
    RESPONSE_CACHE_TTL_SECONDS,
    SOURCE_CACHE_TTL_SECONDS,
)

# Load .env file
load_dotenv()


class NewsSettings(BaseSettings):
    """Pipeline settings, overridable with BALI_REPORT_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BALI_REPORT_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    feed_timeout_seconds: float = Field(default=FEED_TIMEOUT_SECONDS, gt=0)
    feed_max_attempts: int = Field(default=FEED_MAX_ATTEMPTS, ge=1, le=5)
    source_cache_ttl_seconds: int = Field(default=SOURCE_CACHE_TTL_SECONDS, ge=0)
    response_cache_ttl_seconds: int = Field(default=RESPONSE_CACHE_TTL_SECONDS, ge=0)
    min_tier_articles: int = Field(default=MIN_TIER_ARTICLES, ge=1)
    cache_depth: int = Field(default=CACHE_DEPTH, ge=1)
    sources_path: Optional[Path] = None
    log_dir: Path = Path("logs")

    # Accept the provider's conventional variable name as well
    newsdata_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("BALI_REPORT_NEWSDATA_API_KEY", "NEWSDATA_API_KEY"),
    )

    @property
    def has_newsdata_key(self) -> bool:
        """Check if the API tier can be enabled."""
        return bool(self.newsdata_api_key)


_settings_instance: Optional[NewsSettings] = None


def get_settings(reload: bool = False) -> NewsSettings:
    """Get or create the process-wide settings instance.

    Args:
        reload: If True, re-read the environment even if already loaded.

    Returns:
        NewsSettings instance.
    """
    global _settings_instance

    if _settings_instance is None or reload:
        _settings_instance = NewsSettings()

    return _settings_instance
