"""CSS-selector web scraper used as the last fallback tier."""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from bali_report.constants import SCRAPER_TIMEOUT_SECONDS
from bali_report.news.fetcher import DEFAULT_HEADERS, parse_date_string
from bali_report.news.models import (
    Article,
    NewsCategory,
    clean_description,
    dedupe_by_link,
    make_article_id,
    utcnow,
)
from bali_report.news.sources.models import ScraperConfig

logger = logging.getLogger("news_pipeline")

_RELATIVE_DATE = re.compile(
    r"(\d+)\s*(minute|min|hour|hr|day|week)s?\s+ago", re.IGNORECASE
)

_UNIT_DELTAS = {
    "minute": timedelta(minutes=1),
    "min": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "hr": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
}


def parse_scraped_date(text: str | None, now: datetime) -> datetime:
    """Parse absolute or relative ("3 hours ago") dates, else return now."""
    if not text:
        return now
    text = text.strip()

    match = _RELATIVE_DATE.search(text)
    if match:
        amount = int(match.group(1))
        return now - _UNIT_DELTAS[match.group(2).lower()] * amount

    lowered = text.lower()
    if lowered.startswith("today") or lowered == "just now":
        return now
    if lowered.startswith("yesterday"):
        return now - timedelta(days=1)

    return parse_date_string(text) or now


class WebScraper:
    """Scrapes listing pages of sites without a usable feed.

    Usage:
        scraper = WebScraper()
        articles = await scraper.scrape_category(NewsCategory.BALI, configs)
        await scraper.close()
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = SCRAPER_TIMEOUT_SECONDS,
        max_concurrent: int = 5,
    ):
        """Initialize the scraper.

        Args:
            client: Shared HTTP client. One is created lazily if None.
            timeout: HTTP request timeout in seconds.
            max_concurrent: Maximum concurrent page requests.
        """
        self.timeout = timeout
        self._http_client = client
        self._owns_client = client is None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=DEFAULT_HEADERS,
                follow_redirects=True,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client if this scraper created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def scrape_category(
        self,
        category: NewsCategory,
        configs: list[ScraperConfig],
    ) -> list[Article]:
        """Scrape every given site concurrently and merge in config order."""
        configs = [c for c in configs if c.category == category and c.active]
        if not configs:
            return []

        results = await asyncio.gather(*(self.scrape_site(c) for c in configs))
        merged: list[Article] = []
        for articles in results:
            merged.extend(articles)
        return dedupe_by_link(merged)

    async def scrape_site(self, config: ScraperConfig) -> list[Article]:
        """Scrape one listing page. Returns [] on any failure."""
        async with self._semaphore:
            try:
                client = await self._get_client()
                response = await client.get(config.url)
                response.raise_for_status()
                html = response.text
            except httpx.HTTPError as e:
                logger.warning(f"SCRAPER_ERROR | {config.name} | {type(e).__name__}: {e}")
                return []

        try:
            articles = await asyncio.to_thread(self.parse_listing, html, config, utcnow())
        except Exception as e:
            logger.warning(f"SCRAPER_PARSE_ERROR | {config.name} | {type(e).__name__}: {e}")
            return []

        logger.debug(f"SCRAPER_OK | {config.name} | {len(articles)} articles")
        return articles

    @staticmethod
    def parse_listing(
        html: str,
        config: ScraperConfig,
        fetched_at: Optional[datetime] = None,
    ) -> list[Article]:
        """Extract articles from listing HTML using the configured selectors."""
        fetched_at = fetched_at or utcnow()
        selectors = config.selectors
        soup = BeautifulSoup(html, "html.parser")

        articles: list[Article] = []
        for node in soup.select(selectors.article_list):
            if len(articles) >= config.max_articles:
                break

            link_node = node.select_one(selectors.article_link)
            title_node = node.select_one(selectors.article_title)
            href = link_node.get("href") if link_node else None
            title = title_node.get_text(" ", strip=True) if title_node else ""
            if not href or not title:
                continue

            description = ""
            if selectors.article_description:
                desc_node = node.select_one(selectors.article_description)
                description = desc_node.get_text(" ", strip=True) if desc_node else ""

            date_text = None
            if selectors.article_date:
                date_node = node.select_one(selectors.article_date)
                if date_node is not None:
                    date_text = date_node.get("datetime") or date_node.get_text(" ", strip=True)

            author = None
            if selectors.article_author:
                author_node = node.select_one(selectors.article_author)
                author = author_node.get_text(" ", strip=True) if author_node else None

            image_url = None
            if selectors.article_image:
                img_node = node.select_one(selectors.article_image)
                if img_node is not None:
                    src = img_node.get("src") or img_node.get("data-src")
                    image_url = urljoin(config.base_url, src) if src else None

            link = urljoin(config.base_url, href)
            articles.append(Article(
                id=make_article_id(config.name, link),
                title=title,
                link=link,
                description=clean_description(description),
                pub_date=parse_scraped_date(date_text, fetched_at),
                category=config.category,
                source=config.name,
                source_url=config.url,
                author=author or None,
                image_url=image_url,
            ))

        return articles
