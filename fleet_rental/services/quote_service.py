# fleet_rental/services/quote_service.py
"""
Quote predicates and quote date parsing.

effective_quote_status / is_quote_convertible are the only places that decide
whether a quote has expired; every conversion path goes through them.
"""

from datetime import datetime, timezone
from typing import Optional
import re

from fleet_rental.exceptions import InvalidDateFormat
from fleet_rental.schemas.booking import Quote, QuoteStatus
from fleet_rental.utils.dates import safe_parse_instant, utc_now

_DATE_SPLIT = re.compile(r"[-/]")


def is_quote_expired(quote: Quote, now: Optional[datetime] = None) -> bool:
    valid_until = safe_parse_instant(quote.valid_until)
    if valid_until is None:
        return False
    return (now or utc_now()) > valid_until


def effective_quote_status(quote: Quote, now: Optional[datetime] = None) -> QuoteStatus:
    """A sent quote past its valid_until reads as expired, whatever the stored status says."""
    if quote.status == QuoteStatus.SENT and is_quote_expired(quote, now):
        return QuoteStatus.EXPIRED
    return quote.status


def is_quote_convertible(quote: Quote, now: Optional[datetime] = None) -> bool:
    return effective_quote_status(quote, now) == QuoteStatus.SENT


def _to_ints(parts: list[str], raw: str) -> list[int]:
    try:
        return [int(p) for p in parts]
    except ValueError:
        raise InvalidDateFormat(f"Invalid date or time format: {raw}", {"value": raw})


def parse_quote_datetime(date_str: str, time_str: Optional[str], default_time: str) -> datetime:
    """
    Build a UTC instant from a quote's date and optional time-of-day strings.
    Dates are Y-M-D split on "-" or "/"; time falls back to `default_time`.
    """
    final_time = time_str or default_time
    raw = f"{date_str} {final_time}"

    # Some quotes store a full ISO instant; only its date part is used
    date_part = date_str.strip().split("T")[0]
    date_parts = _to_ints(_DATE_SPLIT.split(date_part), raw)
    time_parts = _to_ints(final_time.strip().split(":"), raw)
    if len(date_parts) != 3 or len(time_parts) < 2:
        raise InvalidDateFormat(f"Invalid date or time format: {raw}", {"value": raw})

    year, month, day = date_parts
    hours, minutes = time_parts[0], time_parts[1]
    try:
        return datetime(year, month, day, hours, minutes, 0, tzinfo=timezone.utc)
    except ValueError:
        raise InvalidDateFormat(f"Invalid date or time format: {raw}", {"value": raw})
