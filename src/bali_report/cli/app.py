"""Typer app configuration and logging setup."""

from __future__ import annotations

import logging
import warnings

import typer

from bali_report.config import get_settings

# httpx cleanup after asyncio.run() can warn once the loop is gone
warnings.filterwarnings("ignore", message=".*Event loop is closed.*")
warnings.filterwarnings("ignore", category=ResourceWarning)

# Create Typer app
app = typer.Typer(
    name="bali-report",
    help="Multi-source news aggregation with cached fallback",
    add_completion=False,
)


def register_commands() -> None:
    """Register all commands from feature modules."""
    # News commands
    from .news.commands import fetch, refresh_cmd, sources, worker

    app.command(name="fetch")(fetch)
    app.command(name="sources")(sources)
    app.command(name="refresh")(refresh_cmd)
    app.command(name="worker")(worker)

    # Cache commands
    from .cache.commands import cache_stats, health, warm_cache

    app.command(name="warm-cache")(warm_cache)
    app.command(name="cache-stats")(cache_stats)
    app.command(name="health")(health)


def setup_logging() -> None:
    """Configure logging for CLI.

    - Suppresses console output from libraries
    - Writes pipeline events to <log_dir>/news_pipeline.log
    """
    log_dir = get_settings().log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    # Remove any default console handlers from root logger
    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(logging.CRITICAL)

    # Suppress loggers that might print to console
    for logger_name in ["httpx", "httpcore", "asyncio"]:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.WARNING)
        logger.propagate = False

    pipeline_logger = logging.getLogger("news_pipeline")
    pipeline_logger.setLevel(logging.DEBUG)
    pipeline_logger.propagate = False
    pipeline_logger.handlers = []
    file_handler = logging.FileHandler(log_dir / "news_pipeline.log", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    )
    pipeline_logger.addHandler(file_handler)


# Initialize logging on module import
setup_logging()

# Register all commands
register_commands()


def main() -> None:
    """CLI entry point."""
    app()
