"""News service: the cached read path used by routes and scheduled jobs.

Read path for every category route (one generic implementation):

    1. Fresh response-cache entry      -> serve it, servedFrom="cache"
    2. Otherwise run the resolver
    3. Resolver produced articles      -> replace entry, servedFrom="fresh"
    4. Resolver failed, entry exists   -> serve it anyway, servedFrom="stale-cache"
    5. Resolver failed, no entry       -> success=False

A failed fetch never touches the stored entry, so a refresh job that
runs while the network is down cannot wipe good data.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional

import httpx

from bali_report.cache import ResponseCache, SourceCache
from bali_report.config import NewsSettings, get_settings
from bali_report.constants import (
    CACHE_DEPTH,
    DEFAULT_ALL_LIMIT,
    DEFAULT_CATEGORY_LIMIT,
    HEALTH_MIN_HIT_RATE,
    HEALTH_MIN_REQUESTS,
)
from bali_report.news.aggregator import NewsAggregator
from bali_report.news.fetcher import DEFAULT_HEADERS, FeedFetcher
from bali_report.news.moderation import ContentModerator
from bali_report.news.models import (
    NewsCategory,
    NewsResponse,
    ResponseMetadata,
    ServedFrom,
    utcnow,
)
from bali_report.news.newsdata import NewsDataClient
from bali_report.news.resolver import (
    ApiTier,
    FallbackResolver,
    ResolverResult,
    RssTier,
    ScraperTier,
)
from bali_report.news.scraper import WebScraper
from bali_report.news.sources import SourceRegistry

logger = logging.getLogger("news_pipeline")

ALL_ARTICLES_KEY = "articles:all"
ARTICLES_TAG = "articles"


def cache_key_for(category: Optional[NewsCategory]) -> str:
    """Response cache key for a category route (None = all categories)."""
    if category is None:
        return ALL_ARTICLES_KEY
    return f"articles:{category.slug}"


def cache_tags_for(category: Optional[NewsCategory]) -> set[str]:
    slug = category.slug if category is not None else "all"
    return {ARTICLES_TAG, f"category:{slug}"}


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")


class ClearScope(str, Enum):
    """What `clear_cache` removes."""

    ALL = "all"
    TAGS = "tags"
    MEMORY = "memory"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ClearResult:
    scope: ClearScope
    cleared: int
    message: str
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "scope": self.scope.value,
            "cleared": self.cleared,
            "tags": self.tags,
            "message": self.message,
        }


@dataclass
class CacheStats:
    """Summary exposed to the cache-stats endpoint."""

    cache_size_kb: float
    cached_sources: int
    total_requests: int
    hit_rate: float

    def to_dict(self) -> dict:
        return {
            "cacheSize": self.cache_size_kb,
            "cachedSources": self.cached_sources,
            "totalRequests": self.total_requests,
            "hitRate": self.hit_rate,
        }


@dataclass
class SourceWarmResult:
    source_name: str
    url: str
    success: bool
    article_count: int = 0
    error: Optional[str] = None


@dataclass
class WarmCacheReport:
    """Per-source outcome of a cache warm run."""

    success_count: int
    error_count: int
    total_sources: int
    duration_ms: int = 0
    results: list[SourceWarmResult] = field(default_factory=list)

    @property
    def total_failure(self) -> bool:
        return self.total_sources > 0 and self.success_count == 0

    def to_dict(self) -> dict:
        return {
            "successCount": self.success_count,
            "errorCount": self.error_count,
            "totalSources": self.total_sources,
            "durationMs": self.duration_ms,
            "results": [
                {
                    "source": r.source_name,
                    "url": r.url,
                    "success": r.success,
                    "articleCount": r.article_count,
                    "error": r.error,
                }
                for r in self.results
            ],
        }


@dataclass
class HealthReport:
    status: HealthStatus
    active_sources: int
    cached_sources: int
    cached_keys: int
    hit_rate: float
    cache_size_kb: float
    total_requests: int
    uptime_seconds: float
    timestamp: str = field(default_factory=lambda: utcnow().isoformat())

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "uptime": round(self.uptime_seconds, 1),
            "sources": {"active": self.active_sources, "cached": self.cached_sources},
            "cache": {
                "keys": self.cached_keys,
                "hitRate": self.hit_rate,
                "sizeKb": self.cache_size_kb,
                "totalRequests": self.total_requests,
            },
        }


class NewsService:
    """Facade over resolver and caches.

    Construct once per process (see `create_news_service`) and share it:
    the caches it owns are the process-wide cache state.
    """

    def __init__(
        self,
        resolver: FallbackResolver,
        registry: SourceRegistry,
        fetcher: FeedFetcher,
        source_cache: SourceCache,
        response_cache: ResponseCache,
        cache_depth: int = CACHE_DEPTH,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.resolver = resolver
        self.registry = registry
        self.fetcher = fetcher
        self.source_cache = source_cache
        self.response_cache = response_cache
        self.cache_depth = cache_depth
        self._http_client = http_client
        self._started = time.monotonic()

    async def __aenter__(self) -> "NewsService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the shared HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # =========================================================================
    # Read path
    # =========================================================================

    async def fetch_by_category(
        self,
        category: NewsCategory | str,
        include_scrapers: bool = True,
        limit: int = DEFAULT_CATEGORY_LIMIT,
        force_refresh: bool = False,
    ) -> NewsResponse:
        """Articles for one category through the cached read path.

        Raises:
            ValueError: If the category is unknown or `limit` is below 1.
        """
        category = NewsCategory.parse(category)
        _check_limit(limit)
        depth = max(limit, self.cache_depth)
        return await self._serve(
            key=cache_key_for(category),
            tags=cache_tags_for(category),
            loader=lambda: self.resolver.fetch_by_category(
                category, include_scrapers=include_scrapers, limit=depth
            ),
            limit=limit,
            depth=depth,
            force_refresh=force_refresh,
        )

    async def fetch_all_articles(
        self,
        include_scrapers: bool = False,
        limit: int = DEFAULT_ALL_LIMIT,
        force_refresh: bool = False,
    ) -> NewsResponse:
        """Articles across every category through the cached read path.

        Raises:
            ValueError: If `limit` is below 1.
        """
        _check_limit(limit)
        depth = max(limit, self.cache_depth)
        return await self._serve(
            key=ALL_ARTICLES_KEY,
            tags=cache_tags_for(None),
            loader=lambda: self.resolver.fetch_all_articles(
                include_scrapers=include_scrapers, limit=depth
            ),
            limit=limit,
            depth=depth,
            force_refresh=force_refresh,
        )

    async def _serve(
        self,
        key: str,
        tags: Iterable[str],
        loader: Callable[[], Awaitable[ResolverResult]],
        limit: int,
        depth: int,
        force_refresh: bool,
    ) -> NewsResponse:
        start_time = time.time()

        if force_refresh:
            entry, fresh = self.response_cache.get(key), False
        else:
            entry, fresh = self.response_cache.lookup(key)

        if entry is not None and fresh:
            articles = list(entry.articles[:limit])
            logger.debug(f"NEWS_SERVICE | {key} | served:cache | {len(articles)} articles")
            return NewsResponse(
                success=True,
                articles=articles,
                metadata=ResponseMetadata(
                    source=entry.metadata.get("source", "cache"),
                    total=len(articles),
                    fetch_time_ms=self._elapsed_ms(start_time),
                    served_from=ServedFrom.CACHE,
                    cache_age=self.response_cache.age(entry),
                    fallbacks_used=list(entry.metadata.get("fallbacks_used", ())),
                ),
            )

        result: Optional[ResolverResult] = None
        try:
            result = await loader()
        except Exception as e:
            # Treated like a failed fetch: fall back to whatever is cached
            logger.error(f"NEWS_SERVICE_FETCH_ERROR | {key} | {type(e).__name__}: {e}")

        if result is not None and result.success:
            stored = self.response_cache.set(
                key,
                result.articles[:depth],
                metadata={
                    "source": result.source,
                    "fallbacks_used": list(result.fallbacks_used),
                    "outcomes": [o.to_dict() for o in result.outcomes],
                    "fetch_time_ms": result.fetch_time_ms,
                },
                tags=tags,
            )
            articles = list(stored.articles[:limit])
            logger.info(f"NEWS_SERVICE | {key} | served:fresh | {len(articles)} articles")
            return NewsResponse(
                success=True,
                articles=articles,
                metadata=ResponseMetadata(
                    source=result.source,
                    total=len(articles),
                    fetch_time_ms=self._elapsed_ms(start_time),
                    served_from=ServedFrom.FRESH,
                    fallbacks_used=list(result.fallbacks_used),
                ),
            )

        fallbacks = list(result.fallbacks_used) if result is not None else []

        if entry is not None:
            age = self.response_cache.age(entry)
            articles = list(entry.articles[:limit])
            logger.warning(
                f"NEWS_SERVICE | {key} | served:stale-cache | age:{age:.0f}s | {len(articles)} articles"
            )
            return NewsResponse(
                success=True,
                articles=articles,
                metadata=ResponseMetadata(
                    source=entry.metadata.get("source", "cache"),
                    total=len(articles),
                    fetch_time_ms=self._elapsed_ms(start_time),
                    served_from=ServedFrom.STALE_CACHE,
                    cache_age=age,
                    fallbacks_used=fallbacks,
                    warning=f"Fresh fetch failed; serving cached data from {age:.0f}s ago",
                ),
            )

        logger.error(f"NEWS_SERVICE | {key} | all tiers failed and nothing cached")
        return NewsResponse(
            success=False,
            articles=[],
            metadata=ResponseMetadata(
                source="none",
                total=0,
                fetch_time_ms=self._elapsed_ms(start_time),
                served_from=ServedFrom.FRESH,
                fallbacks_used=fallbacks,
                warning="All news sources failed and no cached data is available",
            ),
        )

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.time() - start_time) * 1000)

    # =========================================================================
    # Cache management
    # =========================================================================

    async def warm_cache(self) -> WarmCacheReport:
        """Refetch every active source and repopulate the per-source cache.

        Empty or failed fetches leave the existing entry alone.
        """
        start_time = time.time()
        sources = self.registry.get_active_sources()
        fetched = await asyncio.gather(*(self.fetcher.fetch_result(s) for s in sources))

        results: list[SourceWarmResult] = []
        for source, outcome in zip(sources, fetched):
            if outcome.articles:
                self.source_cache.set(
                    source.url, source.name, outcome.articles, outcome.duration_ms
                )
                results.append(SourceWarmResult(
                    source.name, source.url, True, len(outcome.articles)
                ))
            else:
                results.append(SourceWarmResult(
                    source.name, source.url, False, 0, outcome.error or "no articles"
                ))

        success_count = sum(1 for r in results if r.success)
        report = WarmCacheReport(
            success_count=success_count,
            error_count=len(results) - success_count,
            total_sources=len(sources),
            duration_ms=self._elapsed_ms(start_time),
            results=results,
        )
        logger.info(
            f"CACHE_WARM | sources:{report.total_sources} | ok:{report.success_count} | "
            f"errors:{report.error_count} | {report.duration_ms}ms"
        )
        return report

    def get_cache_stats(self) -> CacheStats:
        source_stats = self.source_cache.stats()
        response_stats = self.response_cache.stats()
        return CacheStats(
            cache_size_kb=round(source_stats["size_kb"] + response_stats["size_kb"], 1),
            cached_sources=source_stats["entries"],
            total_requests=response_stats["total_requests"],
            hit_rate=response_stats["hit_rate"],
        )

    def clear_cache(
        self,
        scope: ClearScope | str = ClearScope.ALL,
        tags: Optional[list[str]] = None,
    ) -> ClearResult:
        """Clear caches.

        Args:
            scope: 'all' (both caches), 'memory' (response cache) or
                'tags' (response entries carrying any of `tags`).
            tags: Tags to clear when scope is 'tags'.

        Raises:
            ValueError: For an unknown scope or 'tags' without tags.
        """
        try:
            scope = ClearScope(scope)
        except ValueError:
            raise ValueError(f"Unknown cache clear scope: {scope!r}") from None

        if scope is ClearScope.TAGS:
            if not tags:
                raise ValueError("Tags are required when clearing by tags")
            cleared = self.response_cache.clear_tags(tags)
            message = f"Cleared {cleared} cached responses tagged {', '.join(tags)}"
        elif scope is ClearScope.MEMORY:
            cleared = self.response_cache.clear()
            message = f"Cleared {cleared} cached responses"
        else:
            responses = self.response_cache.clear()
            sources = self.source_cache.clear()
            cleared = responses + sources
            message = f"Cleared {responses} cached responses and {sources} cached sources"

        logger.info(f"CACHE_CLEAR | scope:{scope.value} | cleared:{cleared}")
        return ClearResult(scope=scope, cleared=cleared, message=message, tags=list(tags or []))

    def get_health(self) -> HealthReport:
        """Aggregate health from active sources, hit rate and cache size."""
        active_sources = len(self.registry.get_active_sources())
        stats = self.get_cache_stats()
        cached_keys = len(self.response_cache)

        if active_sources == 0:
            status = HealthStatus.UNHEALTHY
        elif stats.total_requests >= HEALTH_MIN_REQUESTS and stats.hit_rate < HEALTH_MIN_HIT_RATE:
            status = HealthStatus.DEGRADED
        elif stats.cached_sources == 0 and cached_keys == 0:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.HEALTHY

        return HealthReport(
            status=status,
            active_sources=active_sources,
            cached_sources=stats.cached_sources,
            cached_keys=cached_keys,
            hit_rate=stats.hit_rate,
            cache_size_kb=stats.cache_size_kb,
            total_requests=stats.total_requests,
            uptime_seconds=time.monotonic() - self._started,
        )


def create_news_service(
    settings: NewsSettings | None = None,
    registry: SourceRegistry | None = None,
) -> NewsService:
    """Build the full pipeline around one shared HTTP client.

    Args:
        settings: Settings to use (process settings if None).
        registry: Source registry (loaded from settings.sources_path if None).

    Returns:
        NewsService; close it with `aclose()` or use it as an async context manager.
    """
    settings = settings or get_settings()
    registry = registry or SourceRegistry.load(settings.sources_path)

    client = httpx.AsyncClient(
        headers=DEFAULT_HEADERS,
        follow_redirects=True,
        timeout=httpx.Timeout(settings.feed_timeout_seconds),
    )

    fetcher = FeedFetcher(
        client=client,
        timeout=settings.feed_timeout_seconds,
        max_attempts=settings.feed_max_attempts,
    )
    source_cache = SourceCache(ttl_seconds=settings.source_cache_ttl_seconds)
    aggregator = NewsAggregator(registry, fetcher, source_cache)

    resolver = FallbackResolver(
        tiers=[
            ApiTier(NewsDataClient(settings.newsdata_api_key, client=client)),
            RssTier(aggregator),
            ScraperTier(WebScraper(client=client), registry),
        ],
        moderator=ContentModerator(reliability_seed=registry.get_reliability_seed()),
        min_articles=settings.min_tier_articles,
    )

    return NewsService(
        resolver=resolver,
        registry=registry,
        fetcher=fetcher,
        source_cache=source_cache,
        response_cache=ResponseCache(default_ttl=settings.response_cache_ttl_seconds),
        cache_depth=settings.cache_depth,
        http_client=client,
    )
