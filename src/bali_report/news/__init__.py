"""News aggregation pipeline: sources, fetching, resolution, moderation.

Submodules are imported explicitly (e.g. `bali_report.news.service`) so the
cache package can depend on the models here without an import cycle.
"""

from bali_report.news.models import (
    AggregationResult,
    Article,
    FetchOutcome,
    NewsCategory,
    NewsResponse,
    ResponseMetadata,
    ServedFrom,
    TierName,
    TierStatus,
)

__all__ = [
    "AggregationResult",
    "Article",
    "FetchOutcome",
    "NewsCategory",
    "NewsResponse",
    "ResponseMetadata",
    "ServedFrom",
    "TierName",
    "TierStatus",
]
