"""Calendar and period utilities package."""

from weekly_ledger.periods.dates import (
    DAYS_PER_WEEK,
    WEEKDAY_NAMES,
    InvalidDateError,
    day_of_week,
    end_of_day,
    format_date,
    format_date_for_input,
    format_period,
    is_date_in_week,
    is_date_within_range,
    is_day_of_week,
    next_occurrence_strictly_after,
    parse_date,
    start_of_day,
    week_end,
    week_start,
)

__all__ = [
    "DAYS_PER_WEEK",
    "WEEKDAY_NAMES",
    "InvalidDateError",
    "day_of_week",
    "end_of_day",
    "format_date",
    "format_date_for_input",
    "format_period",
    "is_date_in_week",
    "is_date_within_range",
    "is_day_of_week",
    "next_occurrence_strictly_after",
    "parse_date",
    "start_of_day",
    "week_end",
    "week_start",
]
