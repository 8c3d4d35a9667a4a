"""Out-of-band jobs that keep the caches warm."""

from .refresh import (
    RefreshReport,
    exit_code_for,
    refresh_categories,
    run_worker,
    warm_sources,
)

__all__ = [
    "RefreshReport",
    "exit_code_for",
    "refresh_categories",
    "run_worker",
    "warm_sources",
]
