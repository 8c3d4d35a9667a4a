"""News source configuration and registry.

This package provides centralized configuration for news sources
loaded from news_sources.yaml.

Usage:
    from bali_report.news.sources import get_source_registry

    registry = get_source_registry()
    sources = registry.get_active_sources()
"""

from .models import (
    NewsSourcesConfig,
    ScraperConfig,
    ScraperSelectors,
    SourceConfig,
)

from .registry import (
    SourceRegistry,
    get_source_registry,
)

__all__ = [
    # Models
    "NewsSourcesConfig",
    "ScraperConfig",
    "ScraperSelectors",
    "SourceConfig",
    # Registry
    "SourceRegistry",
    "get_source_registry",
]
