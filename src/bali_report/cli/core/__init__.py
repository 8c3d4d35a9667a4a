"""Shared CLI utilities (console, parsers)."""
