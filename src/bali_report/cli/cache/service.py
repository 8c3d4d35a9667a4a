"""Cache CLI service layer.

Caches live in process memory, so stats and health describe the caches
of this CLI process after an optional warm-up run.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from bali_report.jobs import warm_sources
from bali_report.news.service import (
    CacheStats,
    HealthReport,
    WarmCacheReport,
    create_news_service,
)


@dataclass
class CacheSnapshot:
    stats: CacheStats
    sources: list[dict]
    resolver_status: dict
    warm_report: WarmCacheReport | None = None


def warm() -> WarmCacheReport:
    """Warm the per-source cache from every active feed."""

    async def _run() -> WarmCacheReport:
        async with create_news_service() as service:
            return await warm_sources(service)

    return asyncio.run(_run())


def collect_snapshot(warm_first: bool) -> CacheSnapshot:
    """Cache stats, cached sources and tier status."""

    async def _run() -> CacheSnapshot:
        async with create_news_service() as service:
            report = await warm_sources(service) if warm_first else None
            return CacheSnapshot(
                stats=service.get_cache_stats(),
                sources=service.source_cache.cached_sources(),
                resolver_status=service.resolver.get_status(),
                warm_report=report,
            )

    return asyncio.run(_run())


def check_health(warm_first: bool) -> HealthReport:
    async def _run() -> HealthReport:
        async with create_news_service() as service:
            if warm_first:
                await warm_sources(service)
            return service.get_health()

    return asyncio.run(_run())
