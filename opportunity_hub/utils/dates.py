"""
Date helpers.

PostgreSQL hands back date/datetime objects while SQLite hands back
strings, so values read from the database go through coerce_* first.
"""

from datetime import date, datetime, timezone
from typing import Optional, Union

from dateutil import parser as date_parser


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def coerce_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Database value -> timezone-aware datetime (naive values are UTC)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def coerce_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def parse_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a loosely formatted date ("2025-03-01", "2025-03-01T10:00:00Z",
    "Sept 30, 2025", "March 5, 2025 11:59 PM", "03/01/2025").
    Missing parts default to the first of the month or year.
    Returns None if the value isn't a date.
    """
    if not value or not value.strip():
        return None
    raw = value.strip()

    default = datetime(utc_now().year, 1, 1)
    try:
        parsed = date_parser.parse(raw, default=default)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()
def to_iso_date(value: Optional[str]) -> Optional[str]:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def days_until(target: date, today: Optional[date] = None) -> int:
    today = today or utc_now().date()
    return (target - today).days
