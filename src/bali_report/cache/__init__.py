"""In-process caches for the news pipeline.

- SourceCache: last good article list per feed URL
- ResponseCache: per-route article lists served by NewsService
"""

from .models import CacheEntry
from .response_cache import ResponseCache
from .source_cache import SourceCache

__all__ = [
    "CacheEntry",
    "ResponseCache",
    "SourceCache",
]
