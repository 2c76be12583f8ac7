"""
Date parsing and clock injection helpers.

Every engine entry point accepts an optional "today" so the same logic can be
exercised without wall-clock coupling. All comparisons happen at day
granularity.

Malformed dates are absent information: parse_date returns None rather than
raising, and callers exclude the record from any date-dependent calculation.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

DateLike = Union[date, datetime, str]


def parse_date(value: Optional[DateLike]) -> Optional[date]:
    """
    Parse a date-ish value into a date.

    Accepts date and datetime instances, ISO date strings ("2026-01-15") and
    ISO datetime strings ("2026-01-15T09:30:00Z").

    Args:
        value: The value to parse, may be None

    Returns:
        The parsed date, or None when the value is missing or unparsable
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    # datetime.fromisoformat only understands a trailing "Z" from 3.11 on
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def resolve_today(today: Optional[DateLike] = None) -> date:
    """
    Resolve the injectable "today" to a date.

    Args:
        today: Override value; None (or an unparsable string) means wall clock

    Returns:
        The date to treat as today
    """
    parsed = parse_date(today)
    if parsed is None:
        return date.today()
    return parsed


def date_key(value: Optional[DateLike]) -> Optional[str]:
    """
    Canonical string form of a date-ish value for equality checks.

    Parsable values render as ISO dates; unparsable strings are kept verbatim
    so two identical malformed values still compare equal.
    """
    if value is None:
        return None
    parsed = parse_date(value)
    if parsed is not None:
        return parsed.isoformat()
    return str(value)


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def parse_datetime(value: Optional[DateLike]) -> Optional[datetime]:
    """
    Parse a date-ish value into a naive UTC datetime.

    Plain dates become midnight; aware datetimes are converted to UTC and made
    naive so every parsed instant is comparable with every other.

    Returns:
        The parsed datetime, or None when the value is missing or unparsable
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z') or text.endswith('z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
