"""Data models for news aggregation and caching."""

from __future__ import annotations

import hashlib
import html
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from bali_report.constants import DESCRIPTION_MAX_LENGTH


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class NewsCategory(str, Enum):
    """Regional categories served by the site."""

    BRICS = "BRICS"
    INDONESIA = "Indonesia"
    BALI = "Bali"
    AFRICA = "Africa"
    EURASIA = "Eurasia"
    SOUTH_AMERICA = "SouthAmerica"
    OPINION = "Opinion"

    @property
    def slug(self) -> str:
        """URL/cache-key form of the category (e.g. 'south-america')."""
        if self is NewsCategory.SOUTH_AMERICA:
            return "south-america"
        return self.value.lower()

    @classmethod
    def parse(cls, value: "str | NewsCategory") -> "NewsCategory":
        """Parse a category from its value or slug, case-insensitively.

        Raises:
            ValueError: If the value names no known category.
        """
        if isinstance(value, cls):
            return value
        key = re.sub(r"[\s_-]", "", str(value)).lower()
        for category in cls:
            if category.value.lower() == key:
                return category
        raise ValueError(f"Unknown news category: {value!r}")


class TierName(str, Enum):
    """Fallback tiers in priority order."""

    API = "api"
    RSS = "rss"
    SCRAPER = "scraper"


class TierStatus(str, Enum):
    """Outcome of one tier attempt."""

    SUCCESS = "success"
    EMPTY = "empty"
    FAILED = "failed"
    SKIPPED = "skipped"


class ServedFrom(str, Enum):
    """Where a response's articles came from."""

    CACHE = "cache"
    FRESH = "fresh"
    STALE_CACHE = "stale-cache"


def slugify(text: str) -> str:
    """Lowercase, hyphen-separated form of a name."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower())
    return slug.strip("-") or "source"


def make_article_id(source_name: str, link: str) -> str:
    """Stable article id from the source name and the article link."""
    digest = hashlib.md5(link.encode("utf-8")).hexdigest()[:12]
    return f"{slugify(source_name)}-{digest}"


def clean_description(text: str | None, max_length: int = DESCRIPTION_MAX_LENGTH) -> str:
    """Strip markup from a feed description and truncate on a word boundary."""
    if not text:
        return ""

    cleaned = re.sub(r"<[^>]+>", " ", text)
    cleaned = html.unescape(cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()

    if len(cleaned) <= max_length:
        return cleaned

    truncated = cleaned[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > 0:
        truncated = truncated[:last_space]
    return truncated.rstrip(" ,.;:") + "..."


@dataclass(frozen=True)
class Article:
    """Canonical, immutable news article.

    `link` is the dedup key: two articles with the same link are the
    same article regardless of which source produced them.
    """

    id: str
    title: str
    link: str
    description: str
    pub_date: datetime
    category: NewsCategory
    source: str
    source_url: str
    author: Optional[str] = None
    image_url: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.link:
            raise ValueError("Article link must not be empty")

    def to_dict(self) -> dict:
        """Convert to the stable wire shape consumed by the site."""
        return {
            "id": self.id,
            "title": self.title,
            "link": self.link,
            "description": self.description,
            "pubDate": self.pub_date.isoformat(),
            "author": self.author,
            "category": self.category.value,
            "source": self.source,
            "sourceUrl": self.source_url,
            "imageUrl": self.image_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Article":
        """Rebuild an article from its wire shape."""
        pub_date = datetime.fromisoformat(data["pubDate"])
        if pub_date.tzinfo is None:
            pub_date = pub_date.replace(tzinfo=timezone.utc)
        return cls(
            id=data["id"],
            title=data["title"],
            link=data["link"],
            description=data.get("description", ""),
            pub_date=pub_date,
            category=NewsCategory.parse(data["category"]),
            source=data["source"],
            source_url=data.get("sourceUrl", ""),
            author=data.get("author"),
            image_url=data.get("imageUrl"),
        )


def sort_newest_first(articles: list[Article]) -> list[Article]:
    """Stable sort by publication date, newest first."""
    return sorted(articles, key=lambda a: a.pub_date, reverse=True)


def dedupe_by_link(articles: list[Article]) -> list[Article]:
    """Drop later articles whose link was already seen (first seen wins)."""
    seen: set[str] = set()
    unique: list[Article] = []
    for article in articles:
        if article.link in seen:
            continue
        seen.add(article.link)
        unique.append(article)
    return unique


@dataclass
class SourceFetchResult:
    """Result of fetching one source, successful or not."""

    source_name: str
    source_url: str
    articles: list[Article] = field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[str] = None
    duration_ms: int = 0
    from_cache: bool = False
    stale: bool = False

    @property
    def success(self) -> bool:
        return self.error is None and bool(self.articles)


@dataclass
class AggregationResult:
    """Result from NewsAggregator.fetch() operation."""

    articles: list[Article]
    fetch_timestamp: datetime = field(default_factory=utcnow)

    # Source statistics
    sources_attempted: int = 0
    sources_succeeded: int = 0
    total_before_dedup: int = 0
    duplicates_removed: int = 0
    duration_ms: int = 0

    # Error tracking
    failed_sources: list[str] = field(default_factory=list)
    stale_sources: list[str] = field(default_factory=list)
    cached_sources: list[str] = field(default_factory=list)

    @property
    def total_articles(self) -> int:
        """Total articles after deduplication and limit."""
        return len(self.articles)

    @property
    def success_rate(self) -> float:
        """Share of attempted sources that produced articles."""
        if self.sources_attempted == 0:
            return 0.0
        return self.sources_succeeded / self.sources_attempted

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/debugging."""
        return {
            "total_articles": self.total_articles,
            "fetch_timestamp": self.fetch_timestamp.isoformat(),
            "sources": {
                "attempted": self.sources_attempted,
                "succeeded": self.sources_succeeded,
                "total_before_dedup": self.total_before_dedup,
                "duplicates_removed": self.duplicates_removed,
                "from_cache": self.cached_sources,
            },
            "errors": {
                "failed_sources": self.failed_sources,
                "stale_sources": self.stale_sources,
            },
            "success_rate": round(self.success_rate, 2),
            "duration_ms": self.duration_ms,
        }


@dataclass
class FetchOutcome:
    """Record of a single tier attempt inside the resolver."""

    tier: TierName
    status: TierStatus
    article_count: int = 0
    duration_ms: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "tier": self.tier.value,
            "status": self.status.value,
            "articleCount": self.article_count,
            "durationMs": self.duration_ms,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class ResponseMetadata:
    """Metadata block of the response envelope."""

    source: str
    total: int
    fetch_time_ms: int
    served_from: ServedFrom
    timestamp: datetime = field(default_factory=utcnow)
    cache_age: Optional[float] = None  # seconds
    fallbacks_used: Optional[list[str]] = None
    warning: Optional[str] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "source": self.source,
            "total": self.total,
            "fetchTime": self.fetch_time_ms,
            "timestamp": self.timestamp.isoformat(),
            "servedFrom": self.served_from.value,
        }
        if self.cache_age is not None:
            data["cacheAge"] = round(self.cache_age, 1)
        if self.fallbacks_used is not None:
            data["fallbacksUsed"] = list(self.fallbacks_used)
        if self.warning:
            data["warning"] = self.warning
        return data


@dataclass
class NewsResponse:
    """Response envelope returned to routes and jobs."""

    success: bool
    articles: list[Article]
    metadata: ResponseMetadata

    def to_dict(self) -> dict:
        """Convert to the JSON envelope."""
        return {
            "success": self.success,
            "articles": [a.to_dict() for a in self.articles],
            "metadata": self.metadata.to_dict(),
        }
