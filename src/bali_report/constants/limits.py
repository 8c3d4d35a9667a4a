"""Limit constants for the news pipeline.

This module contains the tunable numbers of the pipeline:
- Feed fetch timeouts and retry settings
- Cache TTLs and sizes
- Fallback tier acceptance threshold
- Moderation thresholds and penalties
- Health check thresholds

MODIFICATION GUIDE:
------------------
- FEED_* settings: Adjust for slow or flaky upstream feeds
- CACHE_* settings: Trade freshness against upstream load
- MIN_TIER_ARTICLES: Raise to fall through to lower tiers more eagerly
- MODERATION_* values: Tune for content quality requirements
- NEWSDATA_* values: Check the NewsData.io plan before changing
"""

from typing import Final

# =============================================================================
# FEED FETCHER
# =============================================================================

FEED_TIMEOUT_SECONDS: Final[float] = 15.0
"""Upper bound for one source fetch, retries included."""

FEED_MAX_ATTEMPTS: Final[int] = 2
"""Attempts per source before giving up (first try + retries)."""

FEED_RETRY_MIN_WAIT: Final[float] = 2.0
"""Initial backoff between attempts in seconds (doubles per attempt)."""

FEED_RETRY_MAX_WAIT: Final[float] = 4.0
"""Maximum backoff between attempts in seconds."""

FEED_MAX_ITEMS: Final[int] = 20
"""Maximum entries taken from a single feed."""

DESCRIPTION_MAX_LENGTH: Final[int] = 200
"""Plain-text excerpt length before truncation with an ellipsis."""

# =============================================================================
# CACHE
# =============================================================================

SOURCE_CACHE_TTL_SECONDS: Final[int] = 300
"""Freshness window for a per-source RSS cache entry."""

SOURCE_CACHE_MAX_ENTRIES: Final[int] = 50
"""Per-source cache size before the oldest entry is evicted."""

RESPONSE_CACHE_TTL_SECONDS: Final[int] = 300
"""Freshness window for a per-route response cache entry (5 minutes)."""

CACHE_DEPTH: Final[int] = 100
"""Articles stored per response cache key; requests slice from this."""

DEFAULT_CATEGORY_LIMIT: Final[int] = 50
"""Default article limit for a single-category request."""

DEFAULT_ALL_LIMIT: Final[int] = 100
"""Default article limit for the all-categories request."""

# =============================================================================
# FALLBACK RESOLVER
# =============================================================================

MIN_TIER_ARTICLES: Final[int] = 5
"""Accumulated article count at which the tier chain stops."""

# =============================================================================
# NEWSDATA.IO API TIER
# =============================================================================

NEWSDATA_BASE_URL: Final[str] = "https://newsdata.io/api/1/news"
"""NewsData.io latest-news endpoint."""

NEWSDATA_DAILY_CREDITS: Final[int] = 200
"""Free plan request credits per UTC day."""

NEWSDATA_MAX_PAGE_SIZE: Final[int] = 10
"""Articles returned per request on the free plan."""

NEWSDATA_RATE_LIMIT_SECONDS: Final[float] = 1.0
"""Minimum spacing between two API requests."""

NEWSDATA_TIMEOUT_SECONDS: Final[float] = 15.0
"""Request timeout for the API tier."""

# =============================================================================
# SCRAPER TIER
# =============================================================================

SCRAPER_TIMEOUT_SECONDS: Final[float] = 15.0
"""Request timeout for one scraped listing page."""

SCRAPER_MAX_ARTICLES: Final[int] = 10
"""Default number of articles taken from a listing page."""

# =============================================================================
# MODERATION
# =============================================================================

MODERATION_APPROVAL_SCORE: Final[float] = 0.3
"""Minimum quality score for approval (with no high-severity flag)."""

MODERATION_DUPLICATE_THRESHOLD: Final[float] = 0.65
"""Weighted title/description Jaccard similarity marking a duplicate."""

MODERATION_TITLE_WEIGHT: Final[float] = 0.7
"""Weight of title similarity in the duplicate score."""

MODERATION_DESCRIPTION_WEIGHT: Final[float] = 0.3
"""Weight of description similarity in the duplicate score."""

MODERATION_MIN_TITLE_LENGTH: Final[int] = 5
"""Titles shorter than this are rejected as low quality."""

MODERATION_MIN_DESCRIPTION_LENGTH: Final[int] = 20
"""Descriptions shorter than this are flagged as missing content."""

MODERATION_MIN_TITLE_WORDS: Final[int] = 3
MODERATION_MAX_TITLE_WORDS: Final[int] = 20

MODERATION_MAX_CAPS_RATIO: Final[float] = 0.5
"""Share of uppercase letters in a title above which it is shouting."""

RELIABILITY_DEFAULT_SCORE: Final[float] = 0.4
"""Starting trust score for a source with no configured reliability."""

RELIABILITY_MIN_SCORE: Final[float] = 0.5
"""Sources below this score are flagged as unreliable."""

RELIABILITY_ALPHA: Final[float] = 0.05
"""Smoothing factor of the approval-rate moving average."""

# =============================================================================
# HEALTH
# =============================================================================

HEALTH_MIN_HIT_RATE: Final[float] = 30.0
"""Response cache hit rate (percent) below which the service is degraded."""

HEALTH_MIN_REQUESTS: Final[int] = 10
"""Requests needed before the hit rate is taken into account."""
