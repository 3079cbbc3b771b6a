"""Datetime helpers.

Instants are stored as naive UTC datetimes; anything timezone-aware coming in
through the API is converted once, here.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple, Union


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values pass through."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def start_of_day(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        value = to_naive_utc(value).date()
    return datetime.combine(value, time.min)


def week_bounds(week_start: Union[date, datetime]) -> Tuple[datetime, datetime]:
    """Return ``(start, end)`` of the 7-day window beginning at ``week_start``.

    ``end`` is the last instant of the sixth day after the start, inclusive.
    """
    start = start_of_day(week_start)
    end = datetime.combine(start.date() + timedelta(days=6), time.max)
    return start, end
