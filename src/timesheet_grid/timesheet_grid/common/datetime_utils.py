from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Union

from ..core.constants import DATE_KEY_FORMAT
from ..core.exceptions import ValidationError

DateLike = Union[date, datetime, str]


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, DATE_KEY_FORMAT).date()


def normalize_period_date(value: DateLike) -> date:
    """Reduce a period boundary to a calendar date.

    Accepts dates, datetimes and strings such as ``2025-01-31`` or
    ``2025-01-31T23:00:00.000Z``. Only the calendar part is kept; the
    time-of-day and any UTC offset are dropped rather than converted, so a
    boundary never shifts by a day on its way to storage.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if "T" in text:
            text = text.split("T", 1)[0]
        elif " " in text:
            text = text.split(" ", 1)[0]
        try:
            return parse_iso_date(text)
        except ValueError:
            raise ValidationError(f"Invalid date: {value!r}")
    raise ValidationError(f"Unsupported date value: {value!r}")


def date_key(value: date) -> str:
    return value.strftime(DATE_KEY_FORMAT)


def generate_date_range(start: date, end: date) -> list[date]:
    """Every calendar date from start to end, inclusive. Empty when end < start."""
    if end < start:
        return []
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def period_length_days(start: date, end: date) -> int:
    return (end - start).days


def is_weekend(value: date) -> bool:
    return value.weekday() >= 5


def month_start(value: date) -> date:
    return value.replace(day=1)


def month_end(value: date) -> date:
    next_month = (value.replace(day=28) + timedelta(days=4)).replace(day=1)
    return next_month - timedelta(days=1)


def months_covered(start: date, end: date) -> set[tuple[int, int]]:
    """(year, month) pairs touched by the inclusive period."""
    out: set[tuple[int, int]] = set()
    cursor = month_start(start)
    while cursor <= end:
        out.add((cursor.year, cursor.month))
        cursor = month_end(cursor) + timedelta(days=1)
    return out


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
