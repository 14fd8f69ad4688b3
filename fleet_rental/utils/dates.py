# fleet_rental/utils/dates.py
"""
Helpers for the date strings returned by the entity API.
Values arrive as ISO dates ("2024-03-01") or instants ("2024-03-01T09:00:00Z").
"""

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

DateLike = Union[str, date, datetime]


def parse_instant(value: DateLike) -> datetime:
    """Parse an ISO date or datetime into an aware UTC datetime. Naive values are taken as UTC."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    else:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def safe_parse_instant(value: Optional[DateLike]) -> Optional[datetime]:
    """Same as parse_instant but returns None for empty or unparseable values."""
    if not value:
        return None
    try:
        return parse_instant(value)
    except (ValueError, TypeError):
        return None


def to_day(value: DateLike) -> date:
    """Calendar day (UTC) of a date string, date or datetime."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    return parse_instant(value).date()


def midday(day: date) -> datetime:
    """Normalise a day to 12:00 UTC so boundary rounding never shifts it."""
    return datetime.combine(day, time(12, 0), tzinfo=timezone.utc)


def monday_of(day: date) -> date:
    return day - timedelta(days=day.weekday())


def sunday_of(day: date) -> date:
    return day + timedelta(days=6 - day.weekday())


def add_months(day: date, months: int) -> date:
    """Shift by whole calendar months, clamping the day to the target month's length."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def month_bounds(day: date) -> tuple[date, date]:
    """(first, last) day of the month containing `day`."""
    last_day = calendar.monthrange(day.year, day.month)[1]
    return date(day.year, day.month, 1), date(day.year, day.month, last_day)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso(dt: datetime) -> str:
    """ISO-8601 with a trailing Z, the format the entity API stores."""
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")
