"""UTC calendar-day helpers: strict date parsing and working-day counting.

A *calendar day* is a ``datetime.date`` interpreted in UTC. Nothing in here
touches the database; holiday sets are passed in by the caller.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import AbstractSet, Any, Iterator

# Saturday (5) and Sunday (6) in ``date.weekday()`` numbering
WEEKEND_DAYS: frozenset[int] = frozenset({5, 6})

_ISO_DAY_RE = re.compile(r"^([0-9]{4})-([0-9]{1,2})-([0-9]{1,2})$")


class InvalidDateError(ValueError):
    """Raised when a value cannot be read as a UTC calendar day."""


def normalize_to_utc_day(value: Any) -> date:
    """Project *value* onto a UTC calendar day.

    Accepts a ``date``, a ``datetime`` (aware values are converted to UTC,
    naive values are taken as UTC) or a ``YYYY-MM-DD`` string. Time of day is
    discarded. Anything else raises :class:`InvalidDateError`.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidDateError(f"Unsupported date value: {value!r}")

    match = _ISO_DAY_RE.match(value.strip())
    if match is None:
        raise InvalidDateError(f"Expected YYYY-MM-DD, got {value!r}")

    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise InvalidDateError(f"Not a calendar day: {value!r}") from exc


def utc_today() -> date:
    """Current calendar day in UTC."""
    return datetime.now(timezone.utc).date()


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day in ``[start, end]``."""
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)


def is_working_day(day: date, holidays: AbstractSet[date] = frozenset()) -> bool:
    return day.weekday() not in WEEKEND_DAYS and day not in holidays


def count_working_days(
    start: date,
    end: date,
    holidays: AbstractSet[date] = frozenset(),
) -> int:
    """Count days in ``[start, end]`` that are neither weekend nor holiday.

    Returns 0 when ``start > end``. Whole weeks are counted arithmetically,
    so the cost depends on the number of holidays, not the length of the
    range.
    """
    if start > end:
        return 0

    full_weeks, remainder = divmod((end - start).days + 1, 7)
    first = start.weekday()
    weekdays = full_weeks * (7 - len(WEEKEND_DAYS)) + sum(
        1 for i in range(remainder) if (first + i) % 7 not in WEEKEND_DAYS
    )
    holiday_weekdays = sum(
        1 for day in holidays
        if start <= day <= end and day.weekday() not in WEEKEND_DAYS
    )
    return weekdays - holiday_weekdays
