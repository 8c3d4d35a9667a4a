"""Cache CLI commands - thin wrappers orchestrating display and service."""

from __future__ import annotations

import json

import typer

from bali_report.jobs import exit_code_for
from bali_report.news.service import HealthStatus

from ..core.console import console
from .display import show_cache_snapshot, show_health, show_warm_report
from .service import check_health, collect_snapshot, warm


def warm_cache() -> None:
    """Fetch every active source once and report which ones are reachable.

    The per-source cache is process-local and discarded at exit; use
    `worker` to keep it warm. Exits 1 when no source responds.
    """
    report = warm()
    show_warm_report(console, report)
    raise typer.Exit(exit_code_for(report))


def cache_stats(
    warm_first: bool = typer.Option(True, "--warm/--no-warm", help="Warm the cache before reporting"),
) -> None:
    """Show cache statistics and tier availability."""
    snapshot = collect_snapshot(warm_first)
    show_cache_snapshot(console, snapshot)


def health(
    warm_first: bool = typer.Option(True, "--warm/--no-warm", help="Warm the cache before checking"),
    as_json: bool = typer.Option(False, "--json", help="Print the health report as JSON"),
) -> None:
    """Report pipeline health. Exits 1 when unhealthy."""
    report = check_health(warm_first)
    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    else:
        show_health(console, report)
    if report.status is HealthStatus.UNHEALTHY:
        raise typer.Exit(1)
