"""Fallback-priority resolver ("unified news service").

Tiers are tried in a fixed order:

    1. api      NewsData.io (richest metadata, paid credits)
    2. rss      RSS aggregation across the registry's active feeds
    3. scraper  CSS-selector scrapers (cheapest, noisiest)

Every attempt is recorded as a FetchOutcome tagged success, empty,
failed or skipped. Articles accumulate across attempted tiers (higher
tier wins on duplicate links) and the chain stops as soon as the
accumulated count reaches `min_articles`. Tiers that contributed at
least one article are reported in `fallbacks_used`.

Usage:
    resolver = FallbackResolver([ApiTier(newsdata), RssTier(aggregator), ScraperTier(...)])
    result = await resolver.fetch_by_category(NewsCategory.BRICS, limit=50)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

from bali_report.constants import (
    DEFAULT_ALL_LIMIT,
    DEFAULT_CATEGORY_LIMIT,
    MIN_TIER_ARTICLES,
    NEWSDATA_MAX_PAGE_SIZE,
)
from bali_report.news.aggregator import NewsAggregator
from bali_report.news.moderation import ContentModerator
from bali_report.news.models import (
    Article,
    FetchOutcome,
    NewsCategory,
    TierName,
    TierStatus,
    sort_newest_first,
)
from bali_report.news.newsdata import CATEGORY_PARAMS, NewsDataClient, NewsDataError
from bali_report.news.scraper import WebScraper
from bali_report.news.sources import SourceRegistry

logger = logging.getLogger("news_pipeline")


class Tier(Protocol):
    """One option in the fallback chain."""

    name: TierName

    def is_available(self, category: Optional[NewsCategory], include_scrapers: bool) -> bool:
        ...

    async def fetch(self, category: Optional[NewsCategory], limit: int) -> list[Article]:
        ...


# =============================================================================
# Tier adapters
# =============================================================================

class ApiTier:
    """NewsData.io tier."""

    name = TierName.API

    def __init__(self, client: NewsDataClient):
        self.client = client

    def is_available(self, category: Optional[NewsCategory], include_scrapers: bool) -> bool:
        return self.client.is_available(category)

    async def fetch(self, category: Optional[NewsCategory], limit: int) -> list[Article]:
        if category is not None:
            return await self.client.fetch_articles(category, limit)

        # All categories: one request each, spaced by the client's rate limit
        articles: list[Article] = []
        errors: list[str] = []
        for cat in CATEGORY_PARAMS:
            if not self.client.is_available(cat):
                break
            try:
                articles.extend(await self.client.fetch_articles(cat, NEWSDATA_MAX_PAGE_SIZE))
            except NewsDataError as e:
                errors.append(f"{cat.value}: {e}")
                logger.warning(f"NEWSDATA_ERROR | {cat.value} | {e}")
        if not articles and errors:
            raise NewsDataError("; ".join(errors))
        return articles

    def status(self) -> dict:
        return self.client.get_status()


class RssTier:
    """RSS aggregation tier."""

    name = TierName.RSS

    def __init__(self, aggregator: NewsAggregator):
        self.aggregator = aggregator

    def is_available(self, category: Optional[NewsCategory], include_scrapers: bool) -> bool:
        return bool(self.aggregator.registry.get_active_sources(category))

    async def fetch(self, category: Optional[NewsCategory], limit: int) -> list[Article]:
        # Limit is applied by the resolver once all tiers are merged
        result = await self.aggregator.fetch(category)
        return result.articles

    def status(self) -> dict:
        return {"active_sources": len(self.aggregator.registry.get_active_sources())}


class ScraperTier:
    """Web scraping tier, opt-in per request."""

    name = TierName.SCRAPER

    def __init__(self, scraper: WebScraper, registry: SourceRegistry):
        self.scraper = scraper
        self.registry = registry

    def is_available(self, category: Optional[NewsCategory], include_scrapers: bool) -> bool:
        return include_scrapers and bool(self.registry.get_scrapers(category))

    async def fetch(self, category: Optional[NewsCategory], limit: int) -> list[Article]:
        configs = self.registry.get_scrapers(category)
        categories = [category] if category is not None else list(dict.fromkeys(c.category for c in configs))
        articles: list[Article] = []
        for cat in categories:
            articles.extend(await self.scraper.scrape_category(cat, configs))
        return articles

    def status(self) -> dict:
        return {"active_scrapers": len(self.registry.get_scrapers())}


# =============================================================================
# Resolver
# =============================================================================

@dataclass
class ResolverResult:
    """Outcome of one resolver call."""

    success: bool
    articles: list[Article]
    outcomes: list[FetchOutcome] = field(default_factory=list)
    fallbacks_used: list[str] = field(default_factory=list)
    source: str = "none"
    fetch_time_ms: int = 0
    rejected_count: int = 0

    @property
    def total(self) -> int:
        return len(self.articles)


class FallbackResolver:
    """Runs the tier chain for a category (or all categories)."""

    def __init__(
        self,
        tiers: list[Tier],
        moderator: ContentModerator | None = None,
        min_articles: int = MIN_TIER_ARTICLES,
    ):
        """Initialize the resolver.

        Args:
            tiers: Tiers in priority order (highest first).
            moderator: Optional filter applied to each tier's batch.
            min_articles: Accumulated count that stops the chain.
        """
        self.tiers = list(tiers)
        self.moderator = moderator
        self.min_articles = min_articles

        self._stats: dict = {
            "requests": 0,
            "total_failures": 0,
            "tier_attempts": {t.name.value: 0 for t in self.tiers},
            "tier_successes": {t.name.value: 0 for t in self.tiers},
        }

    @property
    def tier_order(self) -> list[str]:
        return [t.name.value for t in self.tiers]

    async def fetch_by_category(
        self,
        category: NewsCategory,
        include_scrapers: bool = True,
        limit: int = DEFAULT_CATEGORY_LIMIT,
    ) -> ResolverResult:
        return await self.resolve(category, include_scrapers=include_scrapers, limit=limit)

    async def fetch_all_articles(
        self,
        include_scrapers: bool = False,
        limit: int = DEFAULT_ALL_LIMIT,
    ) -> ResolverResult:
        return await self.resolve(None, include_scrapers=include_scrapers, limit=limit)

    async def resolve(
        self,
        category: Optional[NewsCategory],
        include_scrapers: bool = True,
        limit: Optional[int] = None,
    ) -> ResolverResult:
        """Walk the tier chain until enough articles are accepted.

        Never raises for tier failures; `success` is False only when no
        tier produced an acceptable article.

        Raises:
            ValueError: If `limit` is given and below 1.
        """
        if limit is not None and limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        start_time = time.time()
        self._stats["requests"] += 1
        label = category.value if category else "all"

        accepted: list[Article] = []
        seen_links: set[str] = set()
        outcomes: list[FetchOutcome] = []
        fallbacks_used: list[str] = []
        rejected = 0

        for tier in self.tiers:
            if len(accepted) >= self.min_articles:
                break

            outcome, articles = await self._attempt(tier, category, include_scrapers, limit)
            outcomes.append(outcome)
            if outcome.status != TierStatus.SUCCESS:
                continue

            fresh = []
            for article in articles:
                if article.link not in seen_links:
                    seen_links.add(article.link)
                    fresh.append(article)

            if self.moderator is not None:
                batch = self.moderator.moderate_batch(fresh, existing=accepted)
                rejected += batch.rejected_count
                fresh = batch.approved

            if fresh:
                accepted.extend(fresh)
                fallbacks_used.append(tier.name.value)
                self._stats["tier_successes"][tier.name.value] += 1

        articles = sort_newest_first(accepted)
        if limit is not None and len(articles) > limit:
            articles = articles[:limit]

        if len(fallbacks_used) == 1:
            source = fallbacks_used[0]
        elif fallbacks_used:
            source = "mixed"
        else:
            source = "none"

        success = bool(articles)
        if not success:
            self._stats["total_failures"] += 1

        fetch_time_ms = int((time.time() - start_time) * 1000)
        chain = " > ".join(f"{o.tier.value}:{o.status.value}" for o in outcomes)
        logger.info(
            f"RESOLVER | {label} | success:{success} | articles:{len(articles)} | "
            f"used:{','.join(fallbacks_used) or '-'} | rejected:{rejected} | "
            f"chain:{chain} | {fetch_time_ms}ms"
        )

        return ResolverResult(
            success=success,
            articles=articles,
            outcomes=outcomes,
            fallbacks_used=fallbacks_used,
            source=source,
            fetch_time_ms=fetch_time_ms,
            rejected_count=rejected,
        )

    async def _attempt(
        self,
        tier: Tier,
        category: Optional[NewsCategory],
        include_scrapers: bool,
        limit: Optional[int],
    ) -> tuple[FetchOutcome, list[Article]]:
        """Run one tier, converting every failure into a tagged outcome."""
        if not tier.is_available(category, include_scrapers):
            return FetchOutcome(tier=tier.name, status=TierStatus.SKIPPED), []

        self._stats["tier_attempts"][tier.name.value] += 1
        start_time = time.time()
        try:
            articles = await tier.fetch(category, limit or DEFAULT_ALL_LIMIT)
        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.warning(
                f"RESOLVER_TIER_FAILED | {tier.name.value} | {type(e).__name__}: {e} | {duration_ms}ms"
            )
            return FetchOutcome(
                tier=tier.name,
                status=TierStatus.FAILED,
                duration_ms=duration_ms,
                error=f"{type(e).__name__}: {e}",
            ), []

        duration_ms = int((time.time() - start_time) * 1000)
        status = TierStatus.SUCCESS if articles else TierStatus.EMPTY
        return FetchOutcome(
            tier=tier.name,
            status=status,
            article_count=len(articles),
            duration_ms=duration_ms,
        ), articles

    def get_stats(self) -> dict:
        return {
            "requests": self._stats["requests"],
            "total_failures": self._stats["total_failures"],
            "tier_attempts": dict(self._stats["tier_attempts"]),
            "tier_successes": dict(self._stats["tier_successes"]),
        }

    def get_status(self) -> dict:
        """Availability of each tier in priority order."""
        tiers = {}
        for tier in self.tiers:
            describe = getattr(tier, "status", None)
            tiers[tier.name.value] = {
                "available": tier.is_available(None, include_scrapers=True),
                **(describe() if callable(describe) else {}),
            }
        return {"order": self.tier_order, "tiers": tiers, "min_articles": self.min_articles}
