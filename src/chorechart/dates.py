"""Calendar helpers: week boundaries, weekday numbering and date keys.

All helpers work on local calendar dates. Completion facts are day-granular, so
nothing here ever converts to UTC before taking a date.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import IntEnum
from typing import Tuple, Union

DateLike = Union[date, datetime, str]


class Weekday(IntEnum):
    """Days of the week using the persisted numbering (Sunday is ``0``)."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls((day.weekday() + 1) % 7)


ALL_DAYS: frozenset[int] = frozenset(int(day) for day in Weekday)
SCHOOL_DAYS: frozenset[int] = frozenset(range(Weekday.MONDAY, Weekday.SATURDAY))


def today() -> date:
    return date.today()


def now() -> datetime:
    return datetime.now()


def as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_date(value: DateLike) -> date:
    """Return the local calendar date for ``value``.

    Accepts ``YYYY-MM-DD`` keys, ISO-8601 datetimes (aware values are shifted
    to local time first) and ``date``/``datetime`` objects.
    """

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return parse_date(datetime.fromisoformat(text))


def parse_datetime(value: datetime | str) -> datetime:
    """Return a naive local datetime for an ISO string or datetime."""

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def week_start(day: date | datetime) -> date:
    """Return the Monday of the week containing ``day``."""

    current = as_date(day)
    weekday = Weekday.of(current)
    if weekday is Weekday.SUNDAY:
        return current - timedelta(days=6)
    return current - timedelta(days=int(weekday) - 1)


def week_number(day: date | datetime) -> int:
    """Return the ISO-8601 week number of ``day``."""

    return as_date(day).isocalendar()[1]


def format_date(day: date | datetime) -> str:
    return as_date(day).strftime("%Y-%m-%d")


def week_dates(start: date | datetime) -> Tuple[date, ...]:
    first = as_date(start)
    return tuple(first + timedelta(days=offset) for offset in range(7))


def last_n_days(n: int, *, today: date | None = None) -> Tuple[date, ...]:
    """Return ``n`` consecutive dates ending with (and including) today."""

    end = today or date.today()
    return tuple(end - timedelta(days=offset) for offset in range(n - 1, -1, -1))


__all__ = [
    "ALL_DAYS",
    "SCHOOL_DAYS",
    "Weekday",
    "as_date",
    "format_date",
    "last_n_days",
    "now",
    "parse_date",
    "parse_datetime",
    "today",
    "week_dates",
    "week_number",
    "week_start",
]
