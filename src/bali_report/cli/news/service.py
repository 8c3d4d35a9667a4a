"""News CLI service layer - runs pipeline operations for the commands."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from bali_report.config import get_settings
from bali_report.jobs import RefreshReport, refresh_categories, run_worker
from bali_report.news.models import NewsCategory, NewsResponse
from bali_report.news.service import create_news_service
from bali_report.news.sources import SourceConfig, get_source_registry


def fetch_articles(
    category: Optional[NewsCategory],
    limit: int,
    include_scrapers: bool,
) -> NewsResponse:
    """Fetch one category (or all when None) through the cached read path."""

    async def _run() -> NewsResponse:
        async with create_news_service() as service:
            if category is None:
                return await service.fetch_all_articles(
                    include_scrapers=include_scrapers, limit=limit
                )
            return await service.fetch_by_category(
                category, include_scrapers=include_scrapers, limit=limit
            )

    return asyncio.run(_run())


def list_sources(
    category: Optional[NewsCategory],
    include_inactive: bool,
) -> list[SourceConfig]:
    registry = get_source_registry(config_path=get_settings().sources_path)
    sources = registry.get_all_sources(active_only=not include_inactive)
    if category is not None:
        sources = [s for s in sources if s.category == category]
    return sources


def refresh(categories: Optional[list[NewsCategory]]) -> RefreshReport:
    """One refresh run over the given categories (all when None)."""

    async def _run() -> RefreshReport:
        async with create_news_service() as service:
            return await refresh_categories(service, categories)

    return asyncio.run(_run())


def run_refresh_worker(
    interval_seconds: int,
    iterations: Optional[int],
    on_report: Callable[[RefreshReport], None],
) -> Optional[RefreshReport]:
    """Long-running refresh loop sharing one service (and its caches).

    Each run is handed to `on_report` as it finishes; only the last
    report is returned.
    """

    async def _run() -> Optional[RefreshReport]:
        async with create_news_service() as service:
            return await run_worker(
                service, interval_seconds, iterations=iterations, on_report=on_report
            )

    return asyncio.run(_run())
