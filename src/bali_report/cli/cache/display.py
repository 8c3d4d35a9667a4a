"""Display functions for cache commands - pure functions for Rich output."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bali_report.news.service import HealthReport, HealthStatus, WarmCacheReport

from ..core.parsers import format_age
from .service import CacheSnapshot

_HEALTH_STYLE = {
    HealthStatus.HEALTHY: "green",
    HealthStatus.DEGRADED: "yellow",
    HealthStatus.UNHEALTHY: "red",
}


def show_warm_report(console: Console, report: WarmCacheReport) -> None:
    """Display per-source warm results."""
    table = Table(title="Cache Warm")
    table.add_column("Source", style="cyan")
    table.add_column("Result", justify="center")
    table.add_column("Articles", justify="right")
    table.add_column("Error", style="dim")

    for result in report.results:
        status = "[green]ok[/green]" if result.success else "[red]failed[/red]"
        table.add_row(result.source_name, status, str(result.article_count), result.error or "")

    console.print(table)
    border = "red" if report.total_failure else "green"
    console.print(Panel(
        f"[green]{report.success_count}[/green] ok, "
        f"[red]{report.error_count}[/red] failed of {report.total_sources} sources "
        f"[dim]({report.duration_ms}ms)[/dim]",
        border_style=border,
    ))


def show_cache_snapshot(console: Console, snapshot: CacheSnapshot) -> None:
    """Display cache statistics and the cached sources."""
    stats = snapshot.stats
    console.print(Panel(
        f"Cache size: [cyan]{stats.cache_size_kb} KB[/cyan]\n"
        f"Cached sources: [cyan]{stats.cached_sources}[/cyan]\n"
        f"Requests: [cyan]{stats.total_requests}[/cyan]\n"
        f"Hit rate: [cyan]{stats.hit_rate}%[/cyan]",
        title="Cache Stats",
        border_style="cyan",
    ))

    if snapshot.sources:
        table = Table(title="Cached Sources")
        table.add_column("Source", style="cyan")
        table.add_column("Articles", justify="right")
        table.add_column("Age", justify="right")
        table.add_column("Stale", justify="center")
        for row in snapshot.sources:
            stale = "[yellow]yes[/yellow]" if row["stale"] else "[green]no[/green]"
            table.add_row(
                row["source_name"], str(row["article_count"]), format_age(row["age_seconds"]), stale
            )
        console.print(table)

    tiers = snapshot.resolver_status.get("tiers", {})
    order = snapshot.resolver_status.get("order", [])
    parts = []
    for name in order:
        available = tiers.get(name, {}).get("available")
        parts.append(f"[green]{name}[/green]" if available else f"[dim]{name} (off)[/dim]")
    if parts:
        console.print("Tier order: " + " > ".join(parts))


def show_health(console: Console, report: HealthReport) -> None:
    style = _HEALTH_STYLE[report.status]
    console.print(Panel(
        f"[bold {style}]{report.status.value.upper()}[/bold {style}]\n\n"
        f"Active sources: {report.active_sources}\n"
        f"Cached sources: {report.cached_sources}\n"
        f"Cached responses: {report.cached_keys}\n"
        f"Hit rate: {report.hit_rate}% over {report.total_requests} requests\n"
        f"Cache size: {report.cache_size_kb} KB",
        title="Health",
        border_style=style,
    ))
