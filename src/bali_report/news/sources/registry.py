"""Source registry for loading and managing news source configuration.

This module provides the SourceRegistry class which loads the YAML configuration
and hands out sources in a stable order. The order matters: the aggregator's
first-seen-wins deduplication follows it.

Usage:
    from bali_report.news.sources import SourceRegistry

    registry = SourceRegistry.load()

    # Active feeds for one category
    sources = registry.get_active_sources(NewsCategory.BRICS)

    # Scraper fallbacks for a category
    scrapers = registry.get_scrapers(NewsCategory.BALI)
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml

from bali_report.news.models import NewsCategory, utcnow
from bali_report.news.sources.models import (
    NewsSourcesConfig,
    ScraperConfig,
    SourceConfig,
)

logger = logging.getLogger("news_pipeline")


class SourceRegistry:
    """Registry for news source configuration.

    Sources are static: they are never created or destroyed at runtime,
    only toggled active/inactive by editing the configuration.
    """

    # Shipped alongside this module
    DEFAULT_CONFIG_PATH = Path(__file__).parent / "news_sources.yaml"

    def __init__(self, config: NewsSourcesConfig):
        """Initialize with configuration.

        Args:
            config: Parsed configuration object.
        """
        self._config = config
        self._loaded_at: datetime = utcnow()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "SourceRegistry":
        """Load configuration from YAML file.

        Args:
            config_path: Path to YAML config. Uses the packaged file if None.

        Returns:
            SourceRegistry instance.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If YAML is invalid.
        """
        path = Path(config_path) if config_path else cls.DEFAULT_CONFIG_PATH

        if not path.exists():
            raise FileNotFoundError(f"News sources config not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e

        try:
            config = NewsSourcesConfig(**(data or {}))
        except Exception as e:
            raise ValueError(f"Invalid config structure in {path}: {e}") from e

        logger.info(
            f"SOURCE_REGISTRY | loaded={path.name} | sources={len(config.sources)} | "
            f"active={config.active_source_count} | scrapers={config.active_scraper_count}"
        )

        return cls(config)

    @property
    def config(self) -> NewsSourcesConfig:
        """Get the underlying configuration."""
        return self._config

    # =========================================================================
    # Source Access Methods
    # =========================================================================

    def get_all_sources(self, active_only: bool = True) -> list[SourceConfig]:
        """Get all configured feeds in configuration order.

        Args:
            active_only: If True, only return active feeds.
        """
        if active_only:
            return [s for s in self._config.sources if s.active]
        return list(self._config.sources)

    def get_active_sources(
        self,
        category: Optional[NewsCategory] = None,
    ) -> list[SourceConfig]:
        """Get active feeds, optionally for one category.

        Args:
            category: Category filter; None returns every active feed.

        Returns:
            Active sources in stable configuration order.
        """
        sources = self.get_all_sources(active_only=True)
        if category is not None:
            sources = [s for s in sources if s.category == category]
        return sources

    def get_source_by_url(self, url: str) -> Optional[SourceConfig]:
        for source in self._config.sources:
            if source.url == url:
                return source
        return None

    def get_scrapers(
        self,
        category: Optional[NewsCategory] = None,
        active_only: bool = True,
    ) -> list[ScraperConfig]:
        """Get scraper configurations, optionally for one category."""
        scrapers = [s for s in self._config.scrapers if s.active or not active_only]
        if category is not None:
            scrapers = [s for s in scrapers if s.category == category]
        return scrapers

    def get_reliability_seed(self) -> dict[str, float]:
        """Configured reliability scores keyed by source name."""
        return {
            s.name: s.reliability
            for s in self._config.sources
            if s.reliability is not None
        }

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_summary(self) -> dict:
        """Get a summary of the configuration.

        Returns:
            Dictionary with counts per category.
        """
        active = self.get_all_sources(active_only=True)

        by_category: dict[str, int] = {}
        for source in active:
            cat = source.category.value
            by_category[cat] = by_category.get(cat, 0) + 1

        return {
            "version": self._config.version,
            "loaded_at": self._loaded_at.isoformat(),
            "sources": {
                "total": len(self._config.sources),
                "active": len(active),
                "by_category": by_category,
            },
            "scrapers": {
                "total": len(self._config.scrapers),
                "active": len(self.get_scrapers()),
            },
        }


# Module-level cached instance
_registry_instance: Optional[SourceRegistry] = None


def get_source_registry(
    reload: bool = False,
    config_path: Optional[Path] = None,
) -> SourceRegistry:
    """Get or create the default SourceRegistry instance.

    Args:
        reload: If True, reload from YAML even if already loaded.
        config_path: Optional override of the packaged YAML file.

    Returns:
        SourceRegistry instance.
    """
    global _registry_instance

    if _registry_instance is None or reload:
        _registry_instance = SourceRegistry.load(config_path)

    return _registry_instance
