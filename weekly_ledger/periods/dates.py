"""
Calendar and Period Utilities

Pure functions for week boundaries, schedule arithmetic and date formatting.
Nothing here reads the clock or touches storage; callers pass "today" in.

DESIGN DECISION: Calendar dates are plain `datetime.date` values.
Comparisons at date granularity are the same as comparing local midnight
on the left-hand side against end-of-day on the right, so the range checks
below never need to look at a time component.

Weekday numbering follows the ledger's schedule config: 0 = Sunday ... 6 = Saturday.
"""

from datetime import date, datetime, time, timedelta
from typing import Union

DateLike = Union[date, datetime, str]

DAYS_PER_WEEK = 7

WEEKDAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]


class InvalidDateError(ValueError):
    """Value could not be interpreted as a calendar date."""
    pass


def parse_date(value: DateLike) -> date:
    """
    Normalize a date-like value to a calendar date.

    Accepts a `date`, a `datetime` or an ISO string, either `YYYY-MM-DD` or
    a full ISO datetime. Naive datetimes keep their date part; datetimes
    with an offset are converted to local time first.

    Raises:
        InvalidDateError: If the value is empty or not a valid date
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidDateError("Date is required")
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            # Trailing "Z" is not accepted by fromisoformat before 3.11
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise InvalidDateError(f"Invalid date: {value!r}")
        if parsed.tzinfo is not None:
            # Instants count on the local calendar day
            parsed = parsed.astimezone()
        return parsed.date()
    raise InvalidDateError(f"Invalid date: {value!r}")


def day_of_week(value: DateLike) -> int:
    """Weekday of a date, 0 = Sunday."""
    return (parse_date(value).weekday() + 1) % DAYS_PER_WEEK


def is_day_of_week(value: DateLike, weekday: int) -> bool:
    return day_of_week(value) == weekday


def week_start(value: DateLike) -> date:
    """Sunday on or before the given date."""
    d = parse_date(value)
    return d - timedelta(days=day_of_week(d))


def week_end(value: DateLike) -> date:
    """Saturday closing the standard week of the given date."""
    return week_start(value) + timedelta(days=DAYS_PER_WEEK - 1)


def start_of_day(value: DateLike) -> datetime:
    return datetime.combine(parse_date(value), time.min)


def end_of_day(value: DateLike) -> datetime:
    return datetime.combine(parse_date(value), time.max)


def is_date_within_range(value: DateLike, start: DateLike, end: DateLike) -> bool:
    """
    Inclusive range check at date granularity.

    Time-of-day on `value` and `start` is ignored and `end` counts up to its
    last instant, so 23:59:59 on the end date is still inside.
    """
    return parse_date(start) <= parse_date(value) <= parse_date(end)


def is_date_in_week(value: DateLike, start: DateLike) -> bool:
    """Is the date inside the seven days that begin at `start`?"""
    first = parse_date(start)
    return is_date_within_range(
        value, first, first + timedelta(days=DAYS_PER_WEEK - 1)
    )


def next_occurrence_strictly_after(value: DateLike, weekday: int) -> date:
    """
    Smallest date after `value` falling on `weekday`.

    Always advances at least one day, even when `value` is already on
    `weekday`, so a schedule computed from it points strictly forward.
    """
    if not 0 <= weekday < DAYS_PER_WEEK:
        raise ValueError(f"Day of week must be between 0 and 6, got {weekday}")
    d = parse_date(value)
    delta = (weekday - day_of_week(d)) % DAYS_PER_WEEK
    return d + timedelta(days=delta or DAYS_PER_WEEK)


def format_date(value: DateLike) -> str:
    """Display format, dd/mm/yyyy."""
    return parse_date(value).strftime("%d/%m/%Y")


def format_date_for_input(value: DateLike) -> str:
    """Form input format, yyyy-mm-dd."""
    return parse_date(value).isoformat()


def format_period(start: DateLike, end: DateLike) -> str:
    """Readable period, e.g. "02/06/2024 - 08/06/2024"."""
    return f"{format_date(start)} - {format_date(end)}"
