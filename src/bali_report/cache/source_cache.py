"""Per-source RSS result cache.

Keyed by feed URL. `get()` hands back whatever is stored, fresh or not;
callers decide what staleness means for them via `is_stale()`. That lets
the warm job tell "no data" apart from "old data".
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from bali_report.cache.models import CacheEntry, estimate_size_kb
from bali_report.constants import SOURCE_CACHE_MAX_ENTRIES, SOURCE_CACHE_TTL_SECONDS
from bali_report.news.models import Article

logger = logging.getLogger("news_pipeline")


class SourceCache:
    """In-memory cache of the last good article list per feed URL."""

    def __init__(
        self,
        ttl_seconds: float = SOURCE_CACHE_TTL_SECONDS,
        max_entries: int = SOURCE_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._requests = 0
        self._hits = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def set(
        self,
        url: str,
        source_name: str,
        articles: list[Article],
        fetch_duration_ms: int = 0,
    ) -> CacheEntry:
        """Store a fresh entry for a source, replacing any previous one."""
        if url not in self._entries and len(self._entries) >= self.max_entries:
            self._evict_oldest()

        entry = CacheEntry(
            key=url,
            articles=tuple(articles),
            timestamp=self._clock(),
            ttl_seconds=self.ttl_seconds,
            metadata={
                "source_name": source_name,
                "article_count": len(articles),
                "fetch_duration_ms": fetch_duration_ms,
            },
        )
        self._entries[url] = entry
        logger.debug(f"SOURCE_CACHE_SET | {source_name} | {len(articles)} articles")
        return entry

    def get(self, url: str) -> Optional[CacheEntry]:
        """Return the stored entry regardless of freshness."""
        self._requests += 1
        entry = self._entries.get(url)
        if entry is not None:
            self._hits += 1
        return entry

    def is_stale(self, entry: CacheEntry, ttl_seconds: float | None = None) -> bool:
        return not entry.is_fresh(self._clock(), ttl_seconds)

    def has_fresh(self, url: str) -> bool:
        entry = self._entries.get(url)
        return entry is not None and not self.is_stale(entry)

    def clear(self) -> int:
        """Drop every entry. Returns the number removed."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"SOURCE_CACHE_CLEAR | removed:{count}")
        return count

    def clear_expired(self) -> int:
        """Drop stale entries. Returns the number removed."""
        expired = [url for url, entry in self._entries.items() if self.is_stale(entry)]
        for url in expired:
            del self._entries[url]
        if expired:
            logger.info(f"SOURCE_CACHE_EXPIRED | removed:{len(expired)}")
        return len(expired)

    def _evict_oldest(self) -> None:
        oldest_url = min(self._entries, key=lambda u: self._entries[u].timestamp)
        del self._entries[oldest_url]
        logger.debug(f"SOURCE_CACHE_EVICT | {oldest_url}")

    @property
    def hit_rate(self) -> float:
        """Hit rate in percent over all `get()` calls."""
        if self._requests == 0:
            return 0.0
        return round(self._hits / self._requests * 100, 1)

    def cached_sources(self) -> list[dict]:
        """Describe every cached source, newest first."""
        now = self._clock()
        rows = []
        for url, entry in sorted(
            self._entries.items(), key=lambda item: item[1].timestamp, reverse=True
        ):
            rows.append({
                "source_name": entry.metadata.get("source_name", url),
                "url": url,
                "article_count": len(entry.articles),
                "age_seconds": round(entry.age(now), 1),
                "stale": not entry.is_fresh(now),
            })
        return rows

    def stats(self) -> dict:
        now = self._clock()
        return {
            "entries": len(self._entries),
            "fresh_entries": sum(1 for e in self._entries.values() if e.is_fresh(now)),
            "total_articles": sum(len(e.articles) for e in self._entries.values()),
            "total_requests": self._requests,
            "hits": self._hits,
            "hit_rate": self.hit_rate,
            "size_kb": estimate_size_kb(self._entries.values()),
        }
