"""News CLI commands - thin wrappers orchestrating display and service."""

from __future__ import annotations

import json
from typing import List, Optional

import typer

from bali_report.jobs import exit_code_for

from ..core.console import console, print_error, print_warning
from ..core.parsers import parse_category, parse_interval
from .display import show_articles, show_refresh_report, show_sources_table
from .service import fetch_articles, list_sources, refresh, run_refresh_worker


def fetch(
    category: str = typer.Argument("all", help="Category (BRICS, Indonesia, Bali, ...) or 'all'"),
    limit: int = typer.Option(50, "--limit", "-l", min=1, help="Maximum articles to return"),
    no_scrapers: bool = typer.Option(False, "--no-scrapers", help="Skip the scraper tier"),
    as_json: bool = typer.Option(False, "--json", help="Print the response envelope as JSON"),
) -> None:
    """Fetch articles for a category through the fallback chain."""
    try:
        parsed = parse_category(category)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(2)

    # Scrapers are opt-in for the all-categories request
    include_scrapers = not no_scrapers and parsed is not None
    response = fetch_articles(parsed, limit, include_scrapers)

    if as_json:
        typer.echo(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))
    else:
        title = parsed.value if parsed else "All Categories"
        show_articles(console, response, title)
        if response.success and response.metadata.warning:
            print_warning(response.metadata.warning)

    if not response.success:
        raise typer.Exit(1)


def sources(
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Filter by category"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Include inactive sources"),
) -> None:
    """List configured news sources."""
    try:
        parsed = parse_category(category) if category else None
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(2)

    show_sources_table(console, list_sources(parsed, include_inactive=show_all))


def refresh_cmd(
    category: Optional[List[str]] = typer.Option(
        None, "--category", "-c", help="Category to refresh (repeatable, default: all)"
    ),
) -> None:
    """Run one refresh pass as an upstream reachability check (for cron).

    The caches it fills live only as long as this process; use `worker`
    to keep them warm. Exits 1 on total failure.
    """
    try:
        categories = [c for c in (parse_category(v) for v in category or []) if c is not None]
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(2)

    report = refresh(categories or None)
    show_refresh_report(console, report)
    raise typer.Exit(exit_code_for(report))


def worker(
    interval: str = typer.Option("15m", "--interval", "-i", help="Pause between runs (30s, 15m, 1h)"),
    iterations: Optional[int] = typer.Option(
        None, "--iterations", "-n", min=1, help="Stop after N runs (default: run forever)"
    ),
) -> None:
    """Keep caches warm by refreshing on an interval."""
    try:
        seconds = parse_interval(interval)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(2)

    console.print(f"[cyan]Refreshing every {interval}. Press Ctrl+C to stop.[/cyan]")
    try:
        last = run_refresh_worker(
            seconds, iterations, on_report=lambda report: show_refresh_report(console, report)
        )
    except KeyboardInterrupt:
        console.print("[dim]Worker stopped.[/dim]")
        return

    if last is not None and exit_code_for(last):
        raise typer.Exit(1)
