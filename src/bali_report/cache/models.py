"""Cache entry model shared by the source and response caches."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from bali_report.news.models import Article


def freeze_metadata(value: Any) -> Any:
    """Read-only copy of a metadata value: dicts become mapping proxies, lists tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze_metadata(v) for k, v in value.items()})
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(freeze_metadata(v) for v in value)
    return value


@dataclass(frozen=True)
class CacheEntry:
    """Articles stored under one key with their fetch time.

    An entry is fresh while `now - timestamp < ttl_seconds`. Past that it
    is stale but still servable as a fallback. Entries are replaced
    wholesale, never modified; metadata is frozen on construction.
    """

    key: str
    articles: tuple[Article, ...]
    timestamp: float
    ttl_seconds: float
    metadata: Mapping[str, Any] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "articles", tuple(self.articles))
        object.__setattr__(self, "metadata", freeze_metadata(self.metadata))

    def age(self, now: float) -> float:
        """Seconds since the entry was stored."""
        return max(0.0, now - self.timestamp)

    def is_fresh(self, now: float, ttl_seconds: float | None = None) -> bool:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        return now - self.timestamp < ttl


def estimate_size_kb(entries: Iterable[CacheEntry]) -> float:
    """Approximate serialized size of the given entries in KB."""
    total = 0
    for entry in entries:
        total += len(json.dumps([a.to_dict() for a in entry.articles]))
    return round(total / 1024, 1)
