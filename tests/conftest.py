"""Shared test fixtures and configuration.

Provides article factories, source configurations, an in-memory registry
and a controllable clock for the cache tests. HTTP is faked with
httpx.MockTransport so no test touches the network.
"""

from __future__ import annotations

import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx
import pytest

# Keep CLI log files out of the working tree
os.environ.setdefault("BALI_REPORT_LOG_DIR", tempfile.mkdtemp(prefix="bali-report-logs-"))

from bali_report.news.models import Article, NewsCategory, make_article_id
from bali_report.news.sources import (
    NewsSourcesConfig,
    ScraperConfig,
    ScraperSelectors,
    SourceConfig,
    SourceRegistry,
)

# Fixed reference time so ordering assertions are deterministic
BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_article(
    title: str = "Indonesia expands regional trade agreements",
    link: Optional[str] = None,
    source: str = "Test Source",
    category: NewsCategory = NewsCategory.INDONESIA,
    hours_old: float = 1,
    description: str = "A detailed report on the latest developments in the region.",
    pub_date: Optional[datetime] = None,
) -> Article:
    """Create an Article that passes moderation by default."""
    link = link or f"https://example.com/{title.lower().replace(' ', '-')}"
    return Article(
        id=make_article_id(source, link),
        title=title,
        link=link,
        description=description,
        pub_date=pub_date or (BASE_TIME - timedelta(hours=hours_old)),
        category=category,
        source=source,
        source_url="https://example.com/feed.xml",
    )


def make_source(
    name: str,
    category: NewsCategory = NewsCategory.INDONESIA,
    active: bool = True,
    reliability: Optional[float] = 0.9,
) -> SourceConfig:
    slug = name.lower().replace(" ", "-")
    return SourceConfig(
        name=name,
        url=f"https://{slug}.example.com/rss",
        category=category,
        active=active,
        reliability=reliability,
    )


def rss_feed(items: list[dict], title: str = "Test Feed") -> bytes:
    """Render a minimal RSS 2.0 document.

    Each item dict may carry title, link, description, pubDate and
    extra (raw XML appended inside <item>).
    """
    parts = []
    for item in items:
        fields = []
        if item.get("title") is not None:
            fields.append(f"<title>{item['title']}</title>")
        if item.get("link") is not None:
            fields.append(f"<link>{item['link']}</link>")
        if item.get("description") is not None:
            fields.append(f"<description><![CDATA[{item['description']}]]></description>")
        if item.get("pubDate") is not None:
            fields.append(f"<pubDate>{item['pubDate']}</pubDate>")
        fields.append(item.get("extra", ""))
        parts.append("<item>" + "".join(fields) + "</item>")

    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">'
        f"<channel><title>{title}</title><link>https://example.com</link>"
        "<description>Test</description>"
        + "".join(parts)
        + "</channel></rss>"
    ).encode("utf-8")


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sources() -> list[SourceConfig]:
    """Three active Indonesia feeds and one inactive one."""
    return [
        make_source("Alpha News"),
        make_source("Beta Daily"),
        make_source("Gamma Post"),
        make_source("Dormant Times", active=False),
    ]


@pytest.fixture
def scraper_config() -> ScraperConfig:
    return ScraperConfig(
        name="Island Wire",
        url="https://islandwire.example.com/news/",
        base_url="https://islandwire.example.com",
        category=NewsCategory.BALI,
        selectors=ScraperSelectors(
            article_list="article",
            article_link="h2 a",
            article_title="h2",
            article_description=".summary",
            article_date="time",
            article_image="img",
        ),
    )


@pytest.fixture
def registry(sources, scraper_config) -> SourceRegistry:
    """Registry built in memory from the `sources` fixture."""
    return SourceRegistry(NewsSourcesConfig(sources=sources, scrapers=[scraper_config]))


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Factory for AsyncClients backed by a request handler."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture(autouse=True)
def pipeline_logger_propagates():
    """Importing the CLI detaches the pipeline logger; reattach it for caplog."""
    logger = logging.getLogger("news_pipeline")
    logger.propagate = True
    yield
