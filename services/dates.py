"""Calendar date helpers shared by the API, services and CLI."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from models.records import DateRange


class InvalidDateRangeError(ValueError):
    """Raised when a requested range starts after it ends."""


def to_iso_date_string(value: date | datetime) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def format_date_for_display(iso_date: str) -> str:
    """Render ``2024-01-15`` as ``Jan 15, 2024``."""
    parsed = date.fromisoformat(format_date_for_input(iso_date))
    return f"{parsed.strftime('%b')} {parsed.day}, {parsed.year}"


def format_date_for_input(iso_value: str) -> str:
    return iso_value.split("T")[0]


def default_date_range(days: int = 30, today: Optional[date] = None) -> DateRange:
    end = today or date.today()
    start = end - timedelta(days=days)
    return DateRange(start=to_iso_date_string(start), end=to_iso_date_string(end))


def resolve_date_range(
    start: Optional[str],
    end: Optional[str],
    default_days: int = 30,
    today: Optional[date] = None,
) -> DateRange:
    """Fill missing endpoints from the default window and reject reversed ranges."""
    fallback = default_date_range(default_days, today=today)
    try:
        start_value = to_iso_date_string(date.fromisoformat(start)) if start else fallback.start
        end_value = to_iso_date_string(date.fromisoformat(end)) if end else fallback.end
    except ValueError as exc:
        raise InvalidDateRangeError("Dates must use the YYYY-MM-DD format.") from exc

    date_range = DateRange(start=start_value, end=end_value)
    if date_range.is_reversed:
        raise InvalidDateRangeError(
            f"Range start {start_value} is after range end {end_value}."
        )
    return date_range
