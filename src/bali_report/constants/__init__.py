"""Global constants package for the news pipeline.

Import from here rather than hard-coding numbers inline:

    from bali_report.constants import FEED_TIMEOUT_SECONDS, MIN_TIER_ARTICLES
"""

from .limits import (
    CACHE_DEPTH,
    DEFAULT_ALL_LIMIT,
    DEFAULT_CATEGORY_LIMIT,
    DESCRIPTION_MAX_LENGTH,
    FEED_MAX_ATTEMPTS,
    FEED_MAX_ITEMS,
    FEED_RETRY_MAX_WAIT,
    FEED_RETRY_MIN_WAIT,
    FEED_TIMEOUT_SECONDS,
    HEALTH_MIN_HIT_RATE,
    HEALTH_MIN_REQUESTS,
    MIN_TIER_ARTICLES,
    MODERATION_APPROVAL_SCORE,
    MODERATION_DESCRIPTION_WEIGHT,
    MODERATION_DUPLICATE_THRESHOLD,
    MODERATION_MAX_CAPS_RATIO,
    MODERATION_MAX_TITLE_WORDS,
    MODERATION_MIN_DESCRIPTION_LENGTH,
    MODERATION_MIN_TITLE_LENGTH,
    MODERATION_MIN_TITLE_WORDS,
    MODERATION_TITLE_WEIGHT,
    NEWSDATA_BASE_URL,
    NEWSDATA_DAILY_CREDITS,
    NEWSDATA_MAX_PAGE_SIZE,
    NEWSDATA_RATE_LIMIT_SECONDS,
    NEWSDATA_TIMEOUT_SECONDS,
    RELIABILITY_ALPHA,
    RELIABILITY_DEFAULT_SCORE,
    RELIABILITY_MIN_SCORE,
    RESPONSE_CACHE_TTL_SECONDS,
    SCRAPER_MAX_ARTICLES,
    SCRAPER_TIMEOUT_SECONDS,
    SOURCE_CACHE_MAX_ENTRIES,
    SOURCE_CACHE_TTL_SECONDS,
)

__all__ = [
    "CACHE_DEPTH",
    "DEFAULT_ALL_LIMIT",
    "DEFAULT_CATEGORY_LIMIT",
    "DESCRIPTION_MAX_LENGTH",
    "FEED_MAX_ATTEMPTS",
    "FEED_MAX_ITEMS",
    "FEED_RETRY_MAX_WAIT",
    "FEED_RETRY_MIN_WAIT",
    "FEED_TIMEOUT_SECONDS",
    "HEALTH_MIN_HIT_RATE",
    "HEALTH_MIN_REQUESTS",
    "MIN_TIER_ARTICLES",
    "MODERATION_APPROVAL_SCORE",
    "MODERATION_DESCRIPTION_WEIGHT",
    "MODERATION_DUPLICATE_THRESHOLD",
    "MODERATION_MAX_CAPS_RATIO",
    "MODERATION_MAX_TITLE_WORDS",
    "MODERATION_MIN_DESCRIPTION_LENGTH",
    "MODERATION_MIN_TITLE_LENGTH",
    "MODERATION_MIN_TITLE_WORDS",
    "MODERATION_TITLE_WEIGHT",
    "NEWSDATA_BASE_URL",
    "NEWSDATA_DAILY_CREDITS",
    "NEWSDATA_MAX_PAGE_SIZE",
    "NEWSDATA_RATE_LIMIT_SECONDS",
    "NEWSDATA_TIMEOUT_SECONDS",
    "RELIABILITY_ALPHA",
    "RELIABILITY_DEFAULT_SCORE",
    "RELIABILITY_MIN_SCORE",
    "RESPONSE_CACHE_TTL_SECONDS",
    "SCRAPER_MAX_ARTICLES",
    "SCRAPER_TIMEOUT_SECONDS",
    "SOURCE_CACHE_MAX_ENTRIES",
    "SOURCE_CACHE_TTL_SECONDS",
]
