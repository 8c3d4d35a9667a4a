"""Feed fetcher: one source in, normalized articles out.

The fetcher never raises past its boundary. Network errors, timeouts,
HTTP errors and malformed XML all end up as an empty article list plus a
log line, so a single broken feed only means "this source contributed
nothing" to the aggregation.
"""

from __future__ import annotations

import asyncio
import email.utils
import logging
import re
import time
from datetime import datetime, timezone
from typing import Callable, Optional

import feedparser
import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from bali_report.constants import (
    FEED_MAX_ATTEMPTS,
    FEED_MAX_ITEMS,
    FEED_RETRY_MAX_WAIT,
    FEED_RETRY_MIN_WAIT,
    FEED_TIMEOUT_SECONDS,
)
from bali_report.news.models import (
    Article,
    SourceFetchResult,
    clean_description,
    make_article_id,
    utcnow,
)
from bali_report.news.sources.models import SourceConfig

logger = logging.getLogger("news_pipeline")

# Some publishers reject obvious bot user agents
DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/rss+xml, application/xml, text/xml, application/atom+xml, */*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}


class FeedParseError(ValueError):
    """Raised when a feed body cannot be parsed into entries."""


# =============================================================================
# Image extraction
# =============================================================================

def _image_from_media_thumbnail(entry: dict) -> Optional[str]:
    thumbnails = entry.get("media_thumbnail") or []
    for thumb in thumbnails:
        if thumb.get("url"):
            return thumb["url"]
    return None


def _image_from_media_content(entry: dict) -> Optional[str]:
    for media in entry.get("media_content") or []:
        url = media.get("url")
        if not url:
            continue
        medium = media.get("medium")
        mime = media.get("type", "")
        # Many feeds omit both medium and type on image content
        if medium == "image" or mime.startswith("image") or (not medium and not mime):
            return url
    return None


def _image_from_enclosure(entry: dict) -> Optional[str]:
    for enc in entry.get("enclosures") or []:
        if enc.get("type", "").startswith("image"):
            return enc.get("href") or enc.get("url")
    return None


def _image_from_content_html(entry: dict) -> Optional[str]:
    content = entry.get("content")
    html_text = content[0].get("value", "") if content else ""
    html_text = html_text or entry.get("summary", "")
    if "<img" not in html_text:
        return None
    match = re.search(r'<img[^>]+src=["\']([^"\']+)["\']', html_text)
    return match.group(1) if match else None


# Tried in order; the first extractor returning a URL wins.
IMAGE_EXTRACTORS: list[tuple[str, Callable[[dict], Optional[str]]]] = [
    ("media_thumbnail", _image_from_media_thumbnail),
    ("media_content", _image_from_media_content),
    ("enclosure", _image_from_enclosure),
    ("content_img", _image_from_content_html),
]


def extract_image(entry: dict) -> Optional[str]:
    """Resolve an entry's image URL via IMAGE_EXTRACTORS."""
    for _name, extractor in IMAGE_EXTRACTORS:
        url = extractor(entry)
        if url:
            return url
    return None


# =============================================================================
# Date normalization
# =============================================================================

_DATE_FORMATS = [
    "%a, %d %b %Y %H:%M:%S %z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
]


def parse_date_string(date_str: str | None) -> Optional[datetime]:
    """Parse an RSS/Atom/ISO date string to an aware UTC datetime."""
    if not date_str:
        return None
    date_str = date_str.strip()

    parsed: Optional[datetime] = None
    try:
        parsed = email.utils.parsedate_to_datetime(date_str)
    except (TypeError, ValueError, IndexError):
        parsed = None

    if parsed is None:
        try:
            parsed = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
        except ValueError:
            parsed = None

    if parsed is None:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(date_str, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_entry_date(entry: dict, fetched_at: datetime) -> datetime:
    """Publication date of an entry, falling back to fetch time."""
    for key in ("published_parsed", "updated_parsed"):
        struct = entry.get(key)
        if struct:
            try:
                return datetime(*struct[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue

    for key in ("published", "updated", "pubDate", "dc_date"):
        parsed = parse_date_string(entry.get(key))
        if parsed is not None:
            return parsed

    return fetched_at


# =============================================================================
# Parsing
# =============================================================================

def entry_to_article(
    entry: dict,
    source: SourceConfig,
    fetched_at: datetime,
) -> Optional[Article]:
    """Convert a feedparser entry, or return None when it has no link/title."""
    link = (entry.get("link") or "").strip()
    title = re.sub(r"\s+", " ", entry.get("title") or "").strip()
    if not link or not title:
        return None

    description = entry.get("summary") or entry.get("description") or ""
    if not description and entry.get("content"):
        description = entry["content"][0].get("value", "")

    return Article(
        id=make_article_id(source.name, link),
        title=title,
        link=link,
        description=clean_description(description),
        pub_date=parse_entry_date(entry, fetched_at),
        category=source.category,
        source=source.name,
        source_url=source.url,
        author=entry.get("author") or None,
        image_url=extract_image(entry),
    )


def parse_feed(
    content: bytes,
    source: SourceConfig,
    fetched_at: Optional[datetime] = None,
    max_items: int = FEED_MAX_ITEMS,
) -> list[Article]:
    """Synchronous feed parsing.

    Raises:
        FeedParseError: If the body is not a feed with entries.
    """
    fetched_at = fetched_at or utcnow()
    parsed = feedparser.parse(content)

    if parsed.bozo and not parsed.entries:
        raise FeedParseError(f"Feed parse error: {parsed.get('bozo_exception')}")

    articles = []
    for entry in parsed.entries[:max_items]:
        article = entry_to_article(entry, source, fetched_at)
        if article is not None:
            articles.append(article)
    return articles


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


def classify_error(exc: BaseException) -> str:
    """Short error kind used in logs and fetch results."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 404:
            return "not_found"
        if status == 403:
            return "forbidden"
        return "http_error"
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return "timeout"
    if isinstance(exc, httpx.ConnectError):
        message = str(exc).lower()
        if "name or service" in message or "getaddrinfo" in message or "nodename" in message:
            return "dns"
        return "network"
    if isinstance(exc, httpx.TransportError):
        return "network"
    if isinstance(exc, FeedParseError):
        return "parse"
    return "unexpected"


class FeedFetcher:
    """Fetches and parses one RSS/Atom source at a time.

    Usage:
        fetcher = FeedFetcher()
        articles = await fetcher.fetch(source)
        await fetcher.aclose()
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = FEED_TIMEOUT_SECONDS,
        max_attempts: int = FEED_MAX_ATTEMPTS,
        retry_wait_min: float = FEED_RETRY_MIN_WAIT,
        retry_wait_max: float = FEED_RETRY_MAX_WAIT,
        max_items: int = FEED_MAX_ITEMS,
    ):
        """Initialize the fetcher.

        Args:
            client: Shared HTTP client. One is created (and owned) if None.
            timeout: Bound for one source fetch, retries included.
            max_attempts: Attempts per source for retryable errors.
            retry_wait_min: First backoff in seconds.
            retry_wait_max: Backoff ceiling in seconds.
            max_items: Entries taken per feed.
        """
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_wait_min = retry_wait_min
        self.retry_wait_max = retry_wait_max
        self.max_items = max_items

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers=DEFAULT_HEADERS,
            follow_redirects=True,
            timeout=httpx.Timeout(timeout),
        )

    async def fetch(self, source: SourceConfig) -> list[Article]:
        """Fetch one source. Returns [] on any failure."""
        result = await self.fetch_result(source)
        return result.articles

    async def fetch_result(self, source: SourceConfig) -> SourceFetchResult:
        """Fetch one source and report what happened. Never raises."""
        start_time = time.time()
        result = SourceFetchResult(source_name=source.name, source_url=source.url)

        try:
            content = await asyncio.wait_for(self._download(source.url), timeout=self.timeout)
            articles = await asyncio.to_thread(
                parse_feed, content, source, utcnow(), self.max_items
            )
            result.articles = articles
        except asyncio.CancelledError:
            raise
        except Exception as e:
            kind = classify_error(e)
            result.error = str(e) or type(e).__name__
            result.error_kind = kind
            logger.warning(
                f"RSS_FEED_ERROR | {source.name} | kind:{kind} | {type(e).__name__}: {result.error}"
            )

        result.duration_ms = int((time.time() - start_time) * 1000)

        if result.error is None:
            logger.debug(
                f"RSS_FEED_OK | {source.name} | {len(result.articles)} articles | "
                f"{result.duration_ms}ms"
            )

        return result

    async def _download(self, url: str) -> bytes:
        """GET the feed body, retrying transport errors and 5xx responses."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.retry_wait_min,
                min=self.retry_wait_min,
                max=self.retry_wait_max,
            ),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                response = await self._client.get(url)
                response.raise_for_status()
                return response.content
        raise RuntimeError("unreachable")  # pragma: no cover

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()
