"""Bali Report news aggregation and caching pipeline."""

__version__ = "0.1.0"
