"""Calendar-day interval helpers used by every overlap check."""

from datetime import date, datetime, time
from typing import Union

from dateutil.parser import isoparse

from .errors import InvalidDateKind

DayLike = Union[date, datetime, str]

MIDDAY = time(12, 0)


def as_date(value: DayLike) -> date:
    """
    Calendar day of a date, datetime or ISO string, as written.

    Time of day and timezone offsets are discarded without conversion, so
    "2024-06-03T23:30:00-03:00" is June 3rd.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return isoparse(value.strip()).date()
    raise TypeError(f"Cannot read a calendar day from {value!r}")


def normalize_day(value: DayLike) -> datetime:
    """Canonical midday timestamp for a calendar day."""
    return datetime.combine(as_date(value), MIDDAY)


def check_window(start: DayLike, end: DayLike) -> None:
    """Raise InvalidDateKind if start falls after end."""
    if normalize_day(start) > normalize_day(end):
        raise InvalidDateKind(
            f"Start {as_date(start).isoformat()} is after end {as_date(end).isoformat()}",
            start=as_date(start),
            end=as_date(end),
        )


def overlaps(a_start: DayLike, a_end: DayLike, b_start: DayLike, b_end: DayLike) -> bool:
    """
    Check whether two closed day ranges intersect.

    A single-day range has start == end. Ranges sharing a boundary day
    overlap; a range ending the day before another starts does not.
    """
    check_window(a_start, a_end)
    check_window(b_start, b_end)
    return normalize_day(a_start) <= normalize_day(b_end) and normalize_day(
        b_start
    ) <= normalize_day(a_end)
