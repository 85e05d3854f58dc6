"""
Utility functions for facetfilter.

Value parsing shared by the range, date and sort facets. Item attributes
arrive as loosely typed strings, so every parser returns None instead of
raising when a value cannot be interpreted.
"""

import math
import re
from datetime import date, datetime, time as dt_time, timezone
from typing import Any, Optional

from dateutil import parser as date_parser


ISO_DATE_PREFIX = re.compile(r'^\d{4}-\d{2}-\d{2}')


def parse_number(raw: Any) -> Optional[float]:
    """
    Parse a raw attribute value as a finite float.

    Returns:
        The float value, or None for missing, empty, NaN, infinite or
        unparsable input

    Examples:
        >>> parse_number(" 42.5 ")
        42.5
        >>> parse_number("n/a") is None
        True
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None

    if math.isnan(value) or math.isinf(value):
        return None
    return value


def parse_date(raw: Any) -> Optional[datetime]:
    """
    Parse a raw attribute value as a timezone-aware datetime.

    Naive values are assumed to be UTC. Numbers are read as POSIX timestamps.

    Returns:
        Aware datetime, or None if the value cannot be parsed
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, datetime):
        return raw if raw.tzinfo is not None else raw.replace(tzinfo=timezone.utc)

    if isinstance(raw, date):
        return datetime.combine(raw, dt_time.min, tzinfo=timezone.utc)

    if isinstance(raw, (int, float)):
        if math.isnan(raw) or math.isinf(raw):
            return None
        try:
            return datetime.fromtimestamp(raw, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    text = str(raw).strip()
    if not text:
        return None

    try:
        parsed = date_parser.parse(text)
    except (ValueError, OverflowError):
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def looks_like_iso_date(raw: Any) -> bool:
    """True if the value starts with a YYYY-MM-DD prefix."""
    return isinstance(raw, str) and bool(ISO_DATE_PREFIX.match(raw.strip()))


def to_timestamp(value: datetime) -> float:
    """POSIX timestamp of an aware (or UTC-assumed naive) datetime."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def from_timestamp(value: float) -> datetime:
    """UTC datetime for a POSIX timestamp."""
    return datetime.fromtimestamp(value, tz=timezone.utc)


def start_of_day(value: datetime) -> datetime:
    """Midnight (UTC) of the value's UTC calendar day."""
    day = value.astimezone(timezone.utc).date()
    return datetime.combine(day, dt_time.min, tzinfo=timezone.utc)


def end_of_day(value: datetime) -> datetime:
    """Last representable instant (UTC) of the value's UTC calendar day."""
    day = value.astimezone(timezone.utc).date()
    return datetime.combine(day, dt_time.max, tzinfo=timezone.utc)


def current_year_window(now: Optional[datetime] = None):
    """1 January 00:00 to 31 December 23:59:59.999999 of the current UTC year."""
    now = now or datetime.now(timezone.utc)
    start = datetime(now.year, 1, 1, tzinfo=timezone.utc)
    end = datetime.combine(date(now.year, 12, 31), dt_time.max, tzinfo=timezone.utc)
    return start, end
