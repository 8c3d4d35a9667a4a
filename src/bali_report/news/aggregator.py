"""News aggregator that fans the feed fetcher out across active sources.

All sources are fetched concurrently, so a batch takes as long as its
slowest source (bounded by the per-source timeout), not the sum. Results
are then merged in source-list order, which makes deduplication
deterministic even though fetches complete in arbitrary order.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from bali_report.cache.source_cache import SourceCache
from bali_report.news.fetcher import FeedFetcher
from bali_report.news.models import (
    AggregationResult,
    Article,
    NewsCategory,
    SourceFetchResult,
    dedupe_by_link,
    sort_newest_first,
)
from bali_report.news.sources import SourceConfig, SourceRegistry

logger = logging.getLogger("news_pipeline")


class NewsAggregator:
    """Aggregates news from the registry's active RSS sources.

    Usage:
        aggregator = NewsAggregator(registry, FeedFetcher(), SourceCache())

        # One category, freshest 50
        result = await aggregator.fetch(NewsCategory.BRICS, limit=50)

        # Every active source
        result = await aggregator.fetch()
    """

    def __init__(
        self,
        registry: SourceRegistry,
        fetcher: FeedFetcher | None = None,
        source_cache: SourceCache | None = None,
    ):
        """Initialize the aggregator.

        Args:
            registry: Source registry providing active sources in stable order.
            fetcher: Feed fetcher (a default one is created if None).
            source_cache: Optional per-source cache consulted before fetching.
        """
        self.registry = registry
        self.fetcher = fetcher or FeedFetcher()
        self.source_cache = source_cache

    async def fetch(
        self,
        category: Optional[NewsCategory] = None,
        limit: Optional[int] = None,
        use_cache: bool = True,
    ) -> AggregationResult:
        """Fetch, merge, deduplicate and sort articles.

        Args:
            category: Restrict to one category (None = every active source).
            limit: Keep only the newest `limit` articles (applied after sort).
            use_cache: Consult the per-source cache before fetching.

        Returns:
            AggregationResult; empty when no source is active or all fail.
        """
        sources = self.registry.get_active_sources(category)
        return await self.fetch_sources(sources, limit=limit, use_cache=use_cache)

    async def fetch_sources(
        self,
        sources: list[SourceConfig],
        limit: Optional[int] = None,
        use_cache: bool = True,
    ) -> AggregationResult:
        """Aggregate an explicit list of sources (in the given order)."""
        start_time = time.time()

        if not sources:
            logger.info("NEWS_AGGREGATOR | sources:0 | nothing to fetch")
            return AggregationResult(articles=[])

        tasks = [self._fetch_source(source, use_cache) for source in sources]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        all_articles: list[Article] = []
        failed: list[str] = []
        stale: list[str] = []
        cached: list[str] = []
        succeeded = 0

        # zip keeps registry order regardless of completion order
        for source, result in zip(sources, results):
            if isinstance(result, BaseException):
                failed.append(f"{source.name}: {result}")
                logger.warning(f"RSS_FEED_ERROR | {source.name} | kind:unexpected | {result}")
                continue

            if result.error:
                failed.append(f"{source.name}: {result.error_kind or 'error'}")
            if result.stale:
                stale.append(source.name)
            if result.from_cache:
                cached.append(source.name)
            if result.articles:
                succeeded += 1
                all_articles.extend(result.articles)

        total_before_dedup = len(all_articles)
        deduped = dedupe_by_link(all_articles)
        duplicates_removed = total_before_dedup - len(deduped)

        # Sort first, then cap, so the freshest articles survive
        deduped = sort_newest_first(deduped)
        if limit is not None and len(deduped) > limit:
            deduped = deduped[:limit]

        duration_ms = int((time.time() - start_time) * 1000)

        logger.info(
            f"NEWS_AGGREGATOR | sources:{len(sources)} | ok:{succeeded} | "
            f"failed:{len(failed)} | stale:{len(stale)} | cached:{len(cached)} | "
            f"deduped:{len(deduped)} | removed:{duplicates_removed} | {duration_ms}ms"
        )

        return AggregationResult(
            articles=deduped,
            sources_attempted=len(sources),
            sources_succeeded=succeeded,
            total_before_dedup=total_before_dedup,
            duplicates_removed=duplicates_removed,
            duration_ms=duration_ms,
            failed_sources=failed,
            stale_sources=stale,
            cached_sources=cached,
        )

    async def _fetch_source(self, source: SourceConfig, use_cache: bool) -> SourceFetchResult:
        """Fetch one source, consulting and refreshing the per-source cache."""
        entry = None
        if use_cache and self.source_cache is not None:
            entry = self.source_cache.get(source.url)
            if entry is not None and not self.source_cache.is_stale(entry):
                return SourceFetchResult(
                    source_name=source.name,
                    source_url=source.url,
                    articles=list(entry.articles),
                    from_cache=True,
                )

        result = await self.fetcher.fetch_result(source)

        if self.source_cache is not None:
            if result.articles:
                self.source_cache.set(
                    source.url, source.name, result.articles, result.duration_ms
                )
            elif entry is not None:
                # Keep serving the last good copy rather than nothing
                result.articles = list(entry.articles)
                result.stale = True
                logger.info(
                    f"RSS_FEED_STALE | {source.name} | serving {len(entry.articles)} cached articles"
                )

        return result
