"""Formatting utilities for display values."""

from workshop_jobs.core.clock import parse_ts

PLACEHOLDER = "--"


def format_money(value, currency: str = "CHF") -> str:
    """Format an amount Swiss style, e.g. ``CHF 1'234.50``."""
    if value is None:
        return PLACEHOLDER
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return PLACEHOLDER
    if amount != amount:  # NaN
        return PLACEHOLDER
    return f"{currency} {amount:,.2f}".replace(",", "'")


def format_duration(minutes: int) -> str:
    """``45min`` below an hour, ``1h 30min`` from there on."""
    if minutes < 60:
        return f"{minutes}min"
    return f"{minutes // 60}h {minutes % 60}min"


def format_clock(minutes: int) -> str:
    """Running-timer display, ``HH:MM``."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_timestamp(value) -> str:
    if not value:
        return PLACEHOLDER
    return parse_ts(value).astimezone().strftime("%d.%m.%Y, %H:%M")


def format_date_short(value) -> str:
    if not value:
        return PLACEHOLDER
    return parse_ts(value).astimezone().strftime("%d.%m.%Y")
