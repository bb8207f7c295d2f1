"""
Time Utilities

CoinGecko reports dates as ISO-8601 strings (e.g., "2024-03-14T07:10:36.635Z").
The helpers here turn them into timezone-aware UTC datetimes and compute the
cutoffs used by the dashboard views.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from dateutil import parser as dateparser


def ensure_utc(dt: datetime) -> datetime:
    """
    Return a timezone-aware datetime in UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 date string into a UTC datetime.

    Args:
        value: Date string as returned by CoinGecko

    Returns:
        datetime in UTC, or None when the value is empty or unparseable

    Examples:
        >>> parse_iso_datetime("2024-03-14T07:10:36.635Z")
        datetime.datetime(2024, 3, 14, 7, 10, 36, 635000, tzinfo=tzutc())
        >>> parse_iso_datetime("not a date") is None
        True
    """
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return ensure_utc(dateparser.isoparse(value.strip()))
    except (ValueError, OverflowError):
        return None


def days_ago(days: int, now: Optional[datetime] = None) -> datetime:
    """
    UTC datetime ``days`` days before ``now`` (defaults to the current time).

    Example:
        >>> days_ago(30, datetime(2024, 3, 31, tzinfo=timezone.utc))
        datetime.datetime(2024, 3, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    reference = ensure_utc(now) if now is not None else current_utc_datetime()
    return reference - timedelta(days=days)


def current_utc_datetime() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        datetime: Current time as timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)
