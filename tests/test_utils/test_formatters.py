"""Tests for formatting utilities."""

from workshop_jobs.utils.formatters import (
    PLACEHOLDER,
    format_clock,
    format_date_short,
    format_duration,
    format_money,
    format_timestamp,
)


class TestFormatMoney:
    """Swiss franc formatting with apostrophe grouping."""

    def test_basic_amount(self):
        assert format_money(10) == "CHF 10.00"

    def test_thousands(self):
        assert format_money(1234.5) == "CHF 1'234.50"

    def test_millions(self):
        assert format_money(1234567.891) == "CHF 1'234'567.89"

    def test_numeric_string(self):
        assert format_money("95") == "CHF 95.00"

    def test_missing_values(self):
        assert format_money(None) == PLACEHOLDER
        assert format_money("n/a") == PLACEHOLDER
        assert format_money(float("nan")) == PLACEHOLDER


class TestFormatDuration:
    """Minutes as ``45min`` or ``1h 30min``."""

    def test_below_an_hour(self):
        assert format_duration(45) == "45min"

    def test_zero(self):
        assert format_duration(0) == "0min"

    def test_exact_hour(self):
        assert format_duration(60) == "1h 0min"

    def test_hours_and_minutes(self):
        assert format_duration(90) == "1h 30min"
        assert format_duration(605) == "10h 5min"


class TestFormatClock:

    def test_padded(self):
        assert format_clock(5) == "00:05"
        assert format_clock(75) == "01:15"

    def test_long_running(self):
        assert format_clock(1500) == "25:00"


class TestTimestamps:

    def test_empty_is_placeholder(self):
        assert format_timestamp(None) == PLACEHOLDER
        assert format_date_short("") == PLACEHOLDER

    def test_shape(self):
        text = format_timestamp("2026-03-02T08:00:00Z")
        day, time = text.split(", ")
        assert len(day.split(".")) == 3
        assert len(time) == 5
        assert format_date_short("2026-03-02T12:00:00Z").endswith(".2026")
