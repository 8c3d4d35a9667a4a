"""Pure parsing and formatting functions for CLI arguments."""

from __future__ import annotations

import re
from typing import Optional

from bali_report.news.models import NewsCategory


def parse_interval(interval: str) -> int:
    """Parse interval string like '5m', '1h', '30s' to seconds.

    Args:
        interval: String like '5m', '1h', '30s', or just '60'

    Returns:
        Interval in seconds

    Raises:
        ValueError: If format is invalid or the interval is zero
    """
    match = re.match(r"^(\d+)(s|m|h)?$", interval.lower().strip())
    if not match:
        raise ValueError(f"Invalid interval format: {interval}. Use format like 5m, 1h, 30s")

    value = int(match.group(1))
    if value == 0:
        raise ValueError("Interval must be greater than zero")
    unit = match.group(2) or "s"

    multipliers = {"s": 1, "m": 60, "h": 3600}
    return value * multipliers[unit]


def parse_category(value: str) -> Optional[NewsCategory]:
    """Parse a category argument; 'all' maps to None.

    Raises:
        ValueError: If the category is unknown.
    """
    if value.strip().lower() == "all":
        return None
    return NewsCategory.parse(value)


def format_age(seconds: float | None) -> str:
    """Format an age in seconds as '45s', '12m' or '3h 5m'."""
    if seconds is None:
        return "-"
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    minutes, _ = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"
