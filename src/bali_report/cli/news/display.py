"""Display functions for news commands - pure functions for Rich output."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bali_report.jobs import RefreshReport
from bali_report.news.models import NewsResponse, ServedFrom
from bali_report.news.sources import SourceConfig

from ..core.parsers import format_age

_SERVED_STYLE = {
    ServedFrom.CACHE: "cyan",
    ServedFrom.FRESH: "green",
    ServedFrom.STALE_CACHE: "yellow",
}


def show_articles(console: Console, response: NewsResponse, title: str) -> None:
    """Display fetched articles and the response metadata."""
    meta = response.metadata
    style = _SERVED_STYLE.get(meta.served_from, "white")

    if not response.success:
        console.print(Panel(
            f"[red]No articles available[/red]\n\n{meta.warning or ''}",
            title=title,
            border_style="red",
        ))
        return

    table = Table(title=f"{title} ({meta.total})", show_lines=False)
    table.add_column("Published", style="dim", no_wrap=True)
    table.add_column("Source", style="cyan")
    table.add_column("Title")

    for article in response.articles:
        table.add_row(
            article.pub_date.strftime("%Y-%m-%d %H:%M"),
            article.source,
            article.title,
        )

    console.print(table)

    details = [
        f"[{style}]served from: {meta.served_from.value}[/{style}]",
        f"source: {meta.source}",
        f"fetch: {meta.fetch_time_ms}ms",
    ]
    if meta.cache_age is not None:
        details.append(f"cache age: {format_age(meta.cache_age)}")
    if meta.fallbacks_used:
        details.append(f"tiers: {', '.join(meta.fallbacks_used)}")
    console.print("[dim]" + " | ".join(details) + "[/dim]")


def show_sources_table(console: Console, sources: list[SourceConfig]) -> None:
    """Display configured sources in registry order."""
    if not sources:
        console.print("[dim]No sources configured.[/dim]")
        return

    table = Table(title=f"News Sources ({len(sources)})")
    table.add_column("Name", style="cyan")
    table.add_column("Category")
    table.add_column("Active", justify="center")
    table.add_column("URL", style="dim")

    for source in sources:
        active = "[green]yes[/green]" if source.active else "[red]no[/red]"
        table.add_row(source.name, source.category.value, active, source.url)

    console.print(table)


def show_refresh_report(console: Console, report: RefreshReport) -> None:
    """Display the outcome of a refresh run."""
    lines = [
        f"[green]Refreshed:[/green] {len(report.refreshed)}",
        f"[yellow]Kept stale:[/yellow] {len(report.stale)}",
        f"[red]Failed:[/red] {len(report.failed)}",
        f"[dim]Duration: {report.duration_ms}ms[/dim]",
    ]
    if report.failed:
        lines.append("")
        lines.extend(f"  [red]-[/red] {key}" for key in report.failed)

    border = "red" if report.total_failure else ("yellow" if report.stale or report.failed else "green")
    console.print(Panel("\n".join(lines), title="Refresh", border_style=border))
