"""NewsData.io client used as the primary (API) fallback tier.

The free plan allows a fixed number of requests per UTC day, so the
client keeps a credit budget and spaces requests out. The tier is only
available when an API key is configured.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

import httpx

from bali_report.constants import (
    NEWSDATA_BASE_URL,
    NEWSDATA_DAILY_CREDITS,
    NEWSDATA_MAX_PAGE_SIZE,
    NEWSDATA_RATE_LIMIT_SECONDS,
    NEWSDATA_TIMEOUT_SECONDS,
)
from bali_report.news.fetcher import parse_date_string
from bali_report.news.models import (
    Article,
    NewsCategory,
    clean_description,
    make_article_id,
    utcnow,
)

logger = logging.getLogger("news_pipeline")


class NewsDataError(Exception):
    """Raised when the API tier cannot produce articles."""


# Query parameters per category. Opinion pieces are not covered by the API.
CATEGORY_PARAMS: dict[NewsCategory, dict[str, str]] = {
    NewsCategory.BRICS: {"language": "en", "q": "BRICS"},
    NewsCategory.INDONESIA: {"country": "id", "language": "id,en"},
    NewsCategory.BALI: {"country": "id", "language": "id,en", "q": "bali"},
    NewsCategory.AFRICA: {"language": "en", "q": "africa"},
    NewsCategory.EURASIA: {"language": "en", "q": "eurasia OR \"central asia\""},
    NewsCategory.SOUTH_AMERICA: {"language": "en", "q": "\"south america\" OR latin america"},
}


@dataclass
class CreditBudget:
    """Daily request credits, reset at UTC midnight."""

    daily_limit: int = NEWSDATA_DAILY_CREDITS
    used: int = 0
    day: date = field(default_factory=lambda: utcnow().date())

    def _roll_over(self) -> None:
        today = utcnow().date()
        if today != self.day:
            self.day = today
            self.used = 0

    @property
    def remaining(self) -> int:
        self._roll_over()
        return max(0, self.daily_limit - self.used)

    def consume(self, credits: int = 1) -> None:
        self._roll_over()
        self.used += credits


class NewsDataClient:
    """Async client for the NewsData.io latest-news endpoint."""

    def __init__(
        self,
        api_key: Optional[str],
        client: httpx.AsyncClient | None = None,
        base_url: str = NEWSDATA_BASE_URL,
        rate_limit_seconds: float = NEWSDATA_RATE_LIMIT_SECONDS,
        budget: CreditBudget | None = None,
        timeout: float = NEWSDATA_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.rate_limit_seconds = rate_limit_seconds
        self.budget = budget or CreditBudget()

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._last_request = 0.0
        self._lock = asyncio.Lock()

    def supports(self, category: NewsCategory) -> bool:
        return category in CATEGORY_PARAMS

    def is_available(self, category: Optional[NewsCategory] = None) -> bool:
        """API key present, credits left and (optionally) category covered."""
        if not self.api_key:
            return False
        if self.budget.remaining <= 0:
            return False
        return category is None or self.supports(category)

    async def fetch_articles(self, category: NewsCategory, limit: int = 10) -> list[Article]:
        """Fetch the latest articles for a category.

        Raises:
            NewsDataError: If the tier is unavailable or the request fails.
        """
        if not self.api_key:
            raise NewsDataError("NewsData.io API key not configured")
        if not self.supports(category):
            raise NewsDataError(f"Category {category.value} not supported by NewsData.io")
        if self.budget.remaining <= 0:
            raise NewsDataError("NewsData.io daily credits exhausted")

        params = {
            "apikey": self.api_key,
            "size": str(max(1, min(limit, NEWSDATA_MAX_PAGE_SIZE))),
            **CATEGORY_PARAMS[category],
        }

        await self._respect_rate_limit()
        self.budget.consume()

        try:
            response = await self._client.get(self.base_url, params=params)
        except httpx.HTTPError as e:
            raise NewsDataError(f"Request failed: {type(e).__name__}: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise NewsDataError(f"HTTP {response.status_code}: invalid JSON body") from e

        if response.status_code >= 400 or data.get("status") != "success":
            message = data.get("message") or data.get("results") or "Unknown error"
            raise NewsDataError(f"HTTP {response.status_code}: {message}")

        articles = []
        for raw in data.get("results") or []:
            article = self.convert_article(raw, category)
            if article is not None:
                articles.append(article)

        logger.info(
            f"NEWSDATA | {category.value} | received:{len(articles)} | "
            f"credits:{self.budget.used}/{self.budget.daily_limit}"
        )
        return articles

    @staticmethod
    def convert_article(raw: dict, category: NewsCategory) -> Optional[Article]:
        """Convert one API result to an Article (None without link/title)."""
        link = (raw.get("link") or "").strip()
        title = (raw.get("title") or "").strip()
        if not link or not title:
            return None

        source_id = raw.get("source_id") or "unknown"
        source_name = f"{source_id} (NewsData.io)"
        creators = raw.get("creator") or []

        return Article(
            id=raw.get("article_id") or make_article_id(source_name, link),
            title=title,
            link=link,
            description=clean_description(raw.get("description")),
            pub_date=parse_date_string(raw.get("pubDate")) or utcnow(),
            category=category,
            source=source_name,
            source_url=raw.get("source_url") or NEWSDATA_BASE_URL,
            author=creators[0] if creators else None,
            image_url=raw.get("image_url") or None,
        )

    async def _respect_rate_limit(self) -> None:
        async with self._lock:
            elapsed = time.monotonic() - self._last_request
            if elapsed < self.rate_limit_seconds:
                await asyncio.sleep(self.rate_limit_seconds - elapsed)
            self._last_request = time.monotonic()

    def get_status(self) -> dict:
        return {
            "configured": bool(self.api_key),
            "credits_used": self.budget.used,
            "credits_remaining": self.budget.remaining,
            "daily_limit": self.budget.daily_limit,
        }

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
