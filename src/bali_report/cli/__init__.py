"""Command line interface, one subpackage per feature.

- core/: Shared console and parsers
- news/: fetch, sources, refresh, worker
- cache/: warm-cache, cache-stats, health

Usage:
    python -m bali_report --help
    bali-report fetch bali --limit 10
"""

from .app import app, main

__all__ = ["app", "main"]
