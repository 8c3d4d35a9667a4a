"""Scheduled refresh jobs.

These run out of band (cron, systemd timer, or the `worker` command) and
go through the same NewsService entry points as user traffic. Their only
job is to keep the caches warm so reader requests are cache hits.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Optional, Union

from bali_report.news.models import NewsCategory, ServedFrom
from bali_report.news.service import ALL_ARTICLES_KEY, NewsService, WarmCacheReport, cache_key_for

logger = logging.getLogger("news_pipeline")


@dataclass
class RefreshReport:
    """Outcome of one refresh run, by response cache key."""

    refreshed: list[str] = field(default_factory=list)
    stale: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def attempted(self) -> int:
        return len(self.refreshed) + len(self.stale) + len(self.failed)

    @property
    def total_failure(self) -> bool:
        """Nothing was refreshed at all."""
        return self.attempted > 0 and not self.refreshed

    def to_dict(self) -> dict:
        return {
            "refreshed": self.refreshed,
            "stale": self.stale,
            "failed": self.failed,
            "durationMs": self.duration_ms,
        }


async def refresh_categories(
    service: NewsService,
    categories: Optional[Iterable[NewsCategory]] = None,
    include_all: bool = True,
    include_scrapers: bool = True,
) -> RefreshReport:
    """Force a refetch of each category route (and the all-articles route).

    Categories run one after another; each one already fans out across
    its sources concurrently.
    """
    start_time = time.time()
    report = RefreshReport()
    targets = list(categories) if categories is not None else list(NewsCategory)

    for category in targets:
        response = await service.fetch_by_category(
            category, include_scrapers=include_scrapers, force_refresh=True
        )
        _record(report, cache_key_for(category), response.success, response.metadata.served_from)

    if include_all:
        response = await service.fetch_all_articles(force_refresh=True)
        _record(report, ALL_ARTICLES_KEY, response.success, response.metadata.served_from)

    report.duration_ms = int((time.time() - start_time) * 1000)
    logger.info(
        f"REFRESH_JOB | refreshed:{len(report.refreshed)} | stale:{len(report.stale)} | "
        f"failed:{len(report.failed)} | {report.duration_ms}ms"
    )
    return report


def _record(report: RefreshReport, key: str, success: bool, served_from: ServedFrom) -> None:
    if success and served_from is ServedFrom.FRESH:
        report.refreshed.append(key)
    elif success:
        report.stale.append(key)
    else:
        report.failed.append(key)


async def warm_sources(service: NewsService) -> WarmCacheReport:
    """Repopulate the per-source cache from every active feed."""
    return await service.warm_cache()


def exit_code_for(report: Union[RefreshReport, WarmCacheReport]) -> int:
    """Process exit code for a job run: 1 on total failure, else 0."""
    return 1 if report.total_failure else 0


async def run_worker(
    service: NewsService,
    interval_seconds: float,
    iterations: Optional[int] = None,
    warm_first: bool = True,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_report: Optional[Callable[[RefreshReport], None]] = None,
) -> Optional[RefreshReport]:
    """Refresh repeatedly, sleeping `interval_seconds` between runs.

    Args:
        service: Shared news service.
        interval_seconds: Pause between refresh runs, must be positive.
        iterations: Stop after this many runs (None = run until cancelled).
        warm_first: Warm the per-source cache before the first run.
        sleep: Sleep coroutine.
        on_report: Called with each run's report as soon as it finishes.

    Returns:
        Report of the last completed run, or None if no run completed.

    Raises:
        ValueError: If `interval_seconds` is not positive.
    """
    if interval_seconds <= 0:
        raise ValueError(f"interval must be positive, got {interval_seconds}")

    if warm_first:
        await warm_sources(service)

    last: Optional[RefreshReport] = None
    run = 0
    while iterations is None or run < iterations:
        run += 1
        logger.info(f"REFRESH_WORKER | run:{run}")
        last = await refresh_categories(service)
        if on_report is not None:
            on_report(last)
        if iterations is not None and run >= iterations:
            break
        await sleep(interval_seconds)
    return last
