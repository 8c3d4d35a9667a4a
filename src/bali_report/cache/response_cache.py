"""Per-route response cache with TTL, staleness and tag invalidation.

One instance serves every category route. Keys are logical endpoint
names (e.g. "articles:brics", "articles:all"). Stale entries are kept
so the read path can fall back to them when a refetch fails; nothing is
evicted except by an explicit clear.

No locking: two concurrent misses on the same key may both refetch.
Fetches are idempotent, so the last write simply wins.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable, Optional

from bali_report.cache.models import CacheEntry, estimate_size_kb
from bali_report.constants import RESPONSE_CACHE_TTL_SECONDS
from bali_report.news.models import Article

logger = logging.getLogger("news_pipeline")


class ResponseCache:
    """Keyed store of article lists for the response read path."""

    def __init__(
        self,
        default_ttl: float = RESPONSE_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._requests = 0
        self._hits = 0

    def __len__(self) -> int:
        return len(self._entries)

    def now(self) -> float:
        return self._clock()

    def keys(self) -> list[str]:
        return list(self._entries)

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for a key, fresh or stale. Does not count stats."""
        return self._entries.get(key)

    def lookup(self, key: str) -> tuple[Optional[CacheEntry], bool]:
        """Read path lookup.

        Returns:
            Tuple of (entry or None, is_fresh). Counts a hit only when the
            entry is fresh.
        """
        self._requests += 1
        entry = self._entries.get(key)
        fresh = entry is not None and self.is_fresh(entry)
        if fresh:
            self._hits += 1
        return entry, fresh

    def is_fresh(self, entry: CacheEntry) -> bool:
        return entry.is_fresh(self._clock())

    def age(self, entry: CacheEntry) -> float:
        return entry.age(self._clock())

    def set(
        self,
        key: str,
        articles: list[Article],
        metadata: Optional[dict[str, Any]] = None,
        tags: Iterable[str] = (),
        ttl: Optional[float] = None,
    ) -> CacheEntry:
        """Replace the entry for a key with a fresh one."""
        entry = CacheEntry(
            key=key,
            articles=tuple(articles),
            timestamp=self._clock(),
            ttl_seconds=self.default_ttl if ttl is None else ttl,
            metadata=dict(metadata or {}),
            tags=frozenset(tags),
        )
        self._entries[key] = entry
        logger.debug(f"RESPONSE_CACHE_SET | {key} | {len(articles)} articles | tags:{sorted(entry.tags)}")
        return entry

    def clear(self) -> int:
        """Drop every entry. Returns the number removed."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"RESPONSE_CACHE_CLEAR | removed:{count}")
        return count

    def clear_tags(self, tags: Iterable[str]) -> int:
        """Drop entries carrying any of the given tags."""
        wanted = set(tags)
        doomed = [key for key, entry in self._entries.items() if entry.tags & wanted]
        for key in doomed:
            del self._entries[key]
        logger.info(f"RESPONSE_CACHE_CLEAR_TAGS | tags:{sorted(wanted)} | removed:{len(doomed)}")
        return len(doomed)

    def reset_stats(self) -> None:
        self._requests = 0
        self._hits = 0

    @property
    def total_requests(self) -> int:
        return self._requests

    @property
    def hit_rate(self) -> float:
        """Fresh-hit rate in percent."""
        if self._requests == 0:
            return 0.0
        return round(self._hits / self._requests * 100, 1)

    def stats(self) -> dict:
        now = self._clock()
        return {
            "entries": len(self._entries),
            "fresh_entries": sum(1 for e in self._entries.values() if e.is_fresh(now)),
            "total_requests": self._requests,
            "hits": self._hits,
            "misses": self._requests - self._hits,
            "hit_rate": self.hit_rate,
            "size_kb": estimate_size_kb(self._entries.values()),
        }
