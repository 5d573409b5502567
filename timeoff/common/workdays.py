"""Working-day calendar — weekends, holidays and inclusive day counts.

Every input is reduced to a UTC calendar date before it is classified, so
``"2025-01-27"``, ``date(2025, 1, 27)`` and ``"2025-01-27T15:00:00Z"`` all
describe the same day.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Union

from timeoff.common.exceptions import InvalidDateError
from timeoff.config import settings

DateLike = Union[date, datetime, str]


# ── Holiday tables ──────────────────────────────────────────────────

# (month, day) → name; observed every year
FIXED_HOLIDAYS: dict[tuple[int, int], str] = {
    (1, 1): "New Year's Day",
    (6, 19): "Juneteenth",
    (7, 4): "Independence Day",
    (11, 11): "Veterans Day",
    (12, 25): "Christmas Day",
}

# Floating holidays are only known for the reference year. Any other year
# has no floating holidays until a weekday-rule table replaces this one.
FLOATING_HOLIDAYS: dict[int, dict[date, str]] = {
    2025: {
        date(2025, 1, 20): "Martin Luther King Jr. Day",
        date(2025, 2, 17): "Presidents' Day",
        date(2025, 4, 18): "Good Friday",
        date(2025, 5, 26): "Memorial Day",
        date(2025, 9, 1): "Labor Day",
        date(2025, 11, 27): "Thanksgiving Day",
    },
}


# ── Date normalisation ──────────────────────────────────────────────

def to_calendar_date(value: DateLike) -> date:
    """Reduce *value* to a calendar date anchored to UTC.

    Aware datetimes are converted to UTC first; naive ones are taken as UTC.
    Raises ``InvalidDateError`` for ``None`` or anything unparseable.
    """
    if value is None:
        raise InvalidDateError(value)

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return to_calendar_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            raise InvalidDateError(value) from None

    raise InvalidDateError(value)


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def last_day_of_month(value: DateLike) -> date:
    d = to_calendar_date(value)
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def iter_dates(start: DateLike, end: DateLike) -> Iterator[date]:
    """Yield each calendar day from *start* to *end* inclusive."""
    current = to_calendar_date(start)
    last = to_calendar_date(end)
    while current <= last:
        yield current
        current += timedelta(days=1)


# ── Classification ──────────────────────────────────────────────────

def is_weekend(value: DateLike) -> bool:
    return to_calendar_date(value).weekday() >= 5


def holiday_name(value: DateLike) -> str | None:
    """Return the holiday observed on *value*, or ``None``."""
    d = to_calendar_date(value)
    name = FIXED_HOLIDAYS.get((d.month, d.day))
    if name:
        return name
    if (d.month, d.day) in settings.company_holidays_list:
        return "Company Holiday"
    return FLOATING_HOLIDAYS.get(d.year, {}).get(d)


def is_holiday(value: DateLike) -> bool:
    return holiday_name(value) is not None


def is_working_day(value: DateLike) -> bool:
    d = to_calendar_date(value)
    return not is_weekend(d) and not is_holiday(d)


def count_working_days(start: DateLike, end: DateLike) -> int:
    """Count weekdays that are not holidays between *start* and *end* inclusive.

    A reversed range contains no days and counts as 0.
    """
    return sum(1 for d in iter_dates(start, end) if is_working_day(d))
