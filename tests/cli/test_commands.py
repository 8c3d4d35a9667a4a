"""Tests for the typer commands.

Service functions are patched so commands run without network or caches.
"""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from bali_report.cli import app
from bali_report.cli.cache.service import CacheSnapshot
from bali_report.jobs import RefreshReport
from bali_report.news.models import NewsCategory, NewsResponse, ResponseMetadata, ServedFrom
from bali_report.news.service import CacheStats, HealthReport, HealthStatus, WarmCacheReport

from conftest import make_article, make_source

runner = CliRunner()


def ok_response(articles=None) -> NewsResponse:
    articles = articles if articles is not None else [make_article()]
    return NewsResponse(
        success=True,
        articles=articles,
        metadata=ResponseMetadata(
            source="rss", total=len(articles), fetch_time_ms=12,
            served_from=ServedFrom.FRESH, fallbacks_used=["rss"],
        ),
    )


def failed_response() -> NewsResponse:
    return NewsResponse(
        success=False,
        articles=[],
        metadata=ResponseMetadata(
            source="none", total=0, fetch_time_ms=3, served_from=ServedFrom.FRESH,
            warning="All news sources failed and no cached data is available",
        ),
    )


def health_report(status: HealthStatus) -> HealthReport:
    return HealthReport(
        status=status, active_sources=3, cached_sources=1, cached_keys=0,
        hit_rate=0.0, cache_size_kb=1.2, total_requests=0, uptime_seconds=1.0,
    )


# =============================================================================
# News commands
# =============================================================================

class TestFetchCommand:

    def test_fetch_category(self):
        with patch("bali_report.cli.news.commands.fetch_articles", return_value=ok_response()) as mock:
            result = runner.invoke(app, ["fetch", "bali", "--limit", "5"])

        assert result.exit_code == 0
        mock.assert_called_once_with(NewsCategory.BALI, 5, True)
        assert "Indonesia" in result.stdout

    def test_fetch_all_excludes_scrapers(self):
        with patch("bali_report.cli.news.commands.fetch_articles", return_value=ok_response()) as mock:
            result = runner.invoke(app, ["fetch"])

        assert result.exit_code == 0
        mock.assert_called_once_with(None, 50, False)

    def test_fetch_json(self):
        with patch("bali_report.cli.news.commands.fetch_articles", return_value=ok_response()):
            result = runner.invoke(app, ["fetch", "brics", "--json"])

        payload = json.loads(result.stdout)
        assert payload["success"] is True
        assert payload["metadata"]["servedFrom"] == "fresh"

    def test_fetch_stale_prints_warning(self):
        response = ok_response()
        response.metadata.served_from = ServedFrom.STALE_CACHE
        response.metadata.warning = "Fresh fetch failed; serving cached data from 600s ago"
        with patch("bali_report.cli.news.commands.fetch_articles", return_value=response):
            result = runner.invoke(app, ["fetch", "bali"])

        assert result.exit_code == 0
        assert "Warning: Fresh fetch failed" in result.stdout

    def test_fetch_failure_exits_1(self):
        with patch("bali_report.cli.news.commands.fetch_articles", return_value=failed_response()):
            result = runner.invoke(app, ["fetch", "africa"])

        assert result.exit_code == 1

    def test_unknown_category_exits_2(self):
        with patch("bali_report.cli.news.commands.fetch_articles") as mock:
            result = runner.invoke(app, ["fetch", "atlantis"])

        assert result.exit_code == 2
        mock.assert_not_called()


class TestSourcesCommand:

    def test_lists_sources(self):
        sources = [make_source("Antara News"), make_source("Bali Sun", category=NewsCategory.BALI)]
        with patch("bali_report.cli.news.commands.list_sources", return_value=sources) as mock:
            result = runner.invoke(app, ["sources", "--all"])

        assert result.exit_code == 0
        mock.assert_called_once_with(None, include_inactive=True)
        assert "Antara" in result.stdout


class TestRefreshCommand:

    def test_refresh_success(self):
        report = RefreshReport(refreshed=["articles:bali"])
        with patch("bali_report.cli.news.commands.refresh", return_value=report) as mock:
            result = runner.invoke(app, ["refresh", "--category", "bali"])

        assert result.exit_code == 0
        mock.assert_called_once_with([NewsCategory.BALI])

    def test_refresh_defaults_to_all(self):
        report = RefreshReport(refreshed=["articles:all"])
        with patch("bali_report.cli.news.commands.refresh", return_value=report) as mock:
            runner.invoke(app, ["refresh"])

        mock.assert_called_once_with(None)

    def test_refresh_total_failure_exits_1(self):
        report = RefreshReport(failed=["articles:bali", "articles:all"])
        with patch("bali_report.cli.news.commands.refresh", return_value=report):
            result = runner.invoke(app, ["refresh"])

        assert result.exit_code == 1


class TestWorkerCommand:

    def test_worker_runs_iterations(self):
        last = RefreshReport(refreshed=["articles:all"])
        with patch("bali_report.cli.news.commands.run_refresh_worker", return_value=last) as mock:
            result = runner.invoke(app, ["worker", "--interval", "10m", "--iterations", "1"])

        assert result.exit_code == 0
        args, kwargs = mock.call_args
        assert args == (600, 1)
        assert callable(kwargs["on_report"])

    def test_worker_prints_each_run_as_it_finishes(self):
        """Reports reach the terminal even if the loop never returns."""

        def fake_worker(seconds, iterations, on_report):
            on_report(RefreshReport(refreshed=["articles:bali"]))
            on_report(RefreshReport(failed=["articles:brics"]))
            raise KeyboardInterrupt

        with patch("bali_report.cli.news.commands.run_refresh_worker", side_effect=fake_worker):
            result = runner.invoke(app, ["worker", "--interval", "1m"])

        assert result.exit_code == 0
        assert result.stdout.count("Refresh") >= 2
        assert "articles:brics" in result.stdout
        assert "Worker stopped" in result.stdout

    def test_last_run_total_failure_exits_1(self):
        last = RefreshReport(failed=["articles:all"])
        with patch("bali_report.cli.news.commands.run_refresh_worker", return_value=last):
            result = runner.invoke(app, ["worker", "--interval", "10m", "--iterations", "2"])

        assert result.exit_code == 1

    @pytest.mark.parametrize("interval", ["soon", "0", "0m"])
    def test_bad_interval_exits_2(self, interval):
        with patch("bali_report.cli.news.commands.run_refresh_worker") as mock:
            result = runner.invoke(app, ["worker", "--interval", interval])

        assert result.exit_code == 2
        mock.assert_not_called()


class TestOneShotHelp:
    """One-shot refresh commands say their caches do not outlive the process."""

    @pytest.mark.parametrize("command", ["refresh", "warm-cache"])
    def test_help_points_to_worker(self, command):
        result = runner.invoke(app, [command, "--help"])

        assert result.exit_code == 0
        assert "reachab" in result.stdout
        assert "worker" in result.stdout


# =============================================================================
# Cache commands
# =============================================================================

class TestCacheCommands:

    def test_warm_cache_total_failure(self):
        report = WarmCacheReport(success_count=0, error_count=2, total_sources=2)
        with patch("bali_report.cli.cache.commands.warm", return_value=report):
            result = runner.invoke(app, ["warm-cache"])

        assert result.exit_code == 1

    def test_warm_cache_success(self):
        report = WarmCacheReport(success_count=2, error_count=0, total_sources=2)
        with patch("bali_report.cli.cache.commands.warm", return_value=report):
            result = runner.invoke(app, ["warm-cache"])

        assert result.exit_code == 0

    def test_cache_stats(self):
        snapshot = CacheSnapshot(
            stats=CacheStats(cache_size_kb=4.5, cached_sources=1, total_requests=0, hit_rate=0.0),
            sources=[{
                "source_name": "Antara News", "url": "https://antara.example.com/rss",
                "article_count": 12, "age_seconds": 30.0, "stale": False,
            }],
            resolver_status={"order": ["api", "rss"], "tiers": {"api": {"available": False}, "rss": {"available": True}}},
        )
        with patch("bali_report.cli.cache.commands.collect_snapshot", return_value=snapshot) as mock:
            result = runner.invoke(app, ["cache-stats", "--no-warm"])

        assert result.exit_code == 0
        mock.assert_called_once_with(False)
        assert "Antara" in result.stdout

    @pytest.mark.parametrize(
        "status,exit_code",
        [(HealthStatus.HEALTHY, 0), (HealthStatus.DEGRADED, 0), (HealthStatus.UNHEALTHY, 1)],
    )
    def test_health_exit_codes(self, status, exit_code):
        with patch("bali_report.cli.cache.commands.check_health", return_value=health_report(status)):
            result = runner.invoke(app, ["health", "--no-warm"])

        assert result.exit_code == exit_code

    def test_health_json(self):
        with patch("bali_report.cli.cache.commands.check_health", return_value=health_report(HealthStatus.HEALTHY)):
            result = runner.invoke(app, ["health", "--json"])

        assert json.loads(result.stdout)["status"] == "healthy"
