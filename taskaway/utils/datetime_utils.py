"""
Timezone-aware datetime utilities.

All scheduler arithmetic happens in UTC. Helpers here cover the calendar math
the recurrence policies share: day/week/month buckets, elapsed whole units and
ordinal weekday lookup.
"""

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Optional

# UTC timezone constant
UTC = timezone.utc

ONE_DAY = timedelta(days=1)
ONE_WEEK = timedelta(days=7)

_ORDINAL_OFFSETS = {"first": 0, "second": 1, "third": 2, "fourth": 3}


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Returns:
        datetime: Current UTC time with tzinfo set to UTC
    """
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware and in UTC.

    Args:
        dt: datetime to convert (can be None, naive, or timezone-aware)

    Returns:
        Optional[datetime]: UTC timezone-aware datetime, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to a naive UTC datetime for storage in SQLite columns."""
    if dt is None:
        return None
    return ensure_utc(dt).replace(tzinfo=None)


def start_of_day(dt: datetime) -> datetime:
    """Midnight of the day containing dt."""
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(dt: datetime) -> datetime:
    """
    Midnight of the Sunday that starts the week containing dt.

    Weeks run Sunday 00:00 through Saturday 23:59:59.999999.
    """
    days_since_sunday = (dt.weekday() + 1) % 7
    return start_of_day(dt) - timedelta(days=days_since_sunday)


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Number of complete 24h periods from earlier to later (floored)."""
    return (later - earlier) // ONE_DAY


def whole_weeks_between(earlier: datetime, later: datetime) -> int:
    """Number of complete 7-day periods from earlier to later (floored)."""
    return (later - earlier) // ONE_WEEK


def months_between(earlier: datetime, later: datetime) -> int:
    """Calendar months from earlier to later, ignoring the day of month."""
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def day_bucket(dt: datetime) -> str:
    """Period key for day-granular generation, e.g. 'D2025-03-10'."""
    return f"D{dt.date().isoformat()}"


def month_bucket(dt: datetime) -> str:
    """Period key for month-granular generation, e.g. 'M2025-03'."""
    return f"M{dt.year:04d}-{dt.month:02d}"


def nth_weekday_of_month(year: int, month: int, ordinal: str, weekday: int) -> Optional[date]:
    """
    Date of the Nth (or last) given weekday in a month.

    Args:
        year: Calendar year
        month: Calendar month (1-12)
        ordinal: first | second | third | fourth | last
        weekday: Python weekday index (0=Monday ... 6=Sunday)

    Returns:
        The matching date, or None for an unknown ordinal.

    Example:
        >>> nth_weekday_of_month(2025, 1, "first", 0)  # Jan 1st 2025 is a Wednesday
        date(2025, 1, 6)
    """
    if ordinal == "last":
        last_day = calendar.monthrange(year, month)[1]
        last_date = date(year, month, last_day)
        return last_date - timedelta(days=(last_date.weekday() - weekday) % 7)

    offset = _ORDINAL_OFFSETS.get(ordinal)
    if offset is None:
        return None
    first_date = date(year, month, 1)
    first_match = 1 + (weekday - first_date.weekday()) % 7
    return date(year, month, first_match + offset * 7)
