"""Unit tests for CLI core parsers."""

from __future__ import annotations

import pytest

from bali_report.cli.core.parsers import format_age, parse_category, parse_interval
from bali_report.news.models import NewsCategory


class TestParseInterval:
    """Tests for parse_interval function."""

    def test_units(self):
        assert parse_interval("30s") == 30
        assert parse_interval("15m") == 900
        assert parse_interval("1h") == 3600

    def test_plain_number_is_seconds(self):
        assert parse_interval("60") == 60

    def test_whitespace_and_case(self):
        assert parse_interval("  5M ") == 300

    @pytest.mark.parametrize("value", ["", "abc", "5d", "-5m", "1.5h"])
    def test_invalid(self, value):
        with pytest.raises(ValueError, match="Invalid interval format"):
            parse_interval(value)

    @pytest.mark.parametrize("value", ["0", "0s", "00m", "0h"])
    def test_zero_rejected(self, value):
        with pytest.raises(ValueError, match="greater than zero"):
            parse_interval(value)


class TestParseCategory:
    def test_all_maps_to_none(self):
        assert parse_category("all") is None
        assert parse_category(" ALL ") is None

    def test_category(self):
        assert parse_category("south-america") is NewsCategory.SOUTH_AMERICA

    def test_unknown(self):
        with pytest.raises(ValueError):
            parse_category("nowhere")


class TestFormatAge:
    def test_formats(self):
        assert format_age(None) == "-"
        assert format_age(45.6) == "45s"
        assert format_age(720) == "12m"
        assert format_age(3 * 3600 + 5 * 60) == "3h 5m"
