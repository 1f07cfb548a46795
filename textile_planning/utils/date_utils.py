# textile_planning/utils/date_utils.py
from datetime import date, datetime, timedelta
from typing import List, Iterable, Union
import calendar

DEFAULT_WEEKEND_DAYS = (5, 6)  # Saturday, Sunday

def add_days(start_date: date, days: int) -> date:
    """Add days to a date.

    Args:
        start_date: Start date
        days: Number of days to add

    Returns:
        New date
    """
    return start_date + timedelta(days=days)

def days_between(start_date: date, end_date: date) -> int:
    """Calculate days between two dates.

    Args:
        start_date: Start date
        end_date: End date

    Returns:
        Number of days
    """
    delta = end_date - start_date
    return delta.days

def convert_to_date(value: Union[str, date, datetime], format_string: str = "%Y-%m-%d") -> date:
    """Convert a string, datetime or date to a date.

    Args:
        value: Date string, datetime or date
        format_string: Format string used for strings

    Returns:
        Date object
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, format_string).date()

def get_days_in_month(year: int, month: int) -> int:
    """Get number of days in a month.

    Args:
        year: Year
        month: Month (1-12)

    Returns:
        Number of days
    """
    return calendar.monthrange(year, month)[1]

def is_weekend(target_date: date, weekend_days: Iterable[int] = DEFAULT_WEEKEND_DAYS) -> bool:
    """Check whether a date falls on a weekend day (0=Monday, 6=Sunday)."""
    return target_date.weekday() in tuple(weekend_days)

def add_months(start_date: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month length.

    Args:
        start_date: Start date
        months: Number of months to add (may be negative)

    Returns:
        Shifted date
    """
    month_index = start_date.month - 1 + months
    year = start_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start_date.day, get_days_in_month(year, month))
    return date(year, month, day)

def month_key(target_date: date) -> str:
    """Return a 'YYYY-MM' key for grouping by calendar month."""
    return f"{target_date.year:04d}-{target_date.month:02d}"

def month_window(start_month: int, months: int) -> List[int]:
    """Build a window of consecutive 0-based month indices wrapping modulo 12.

    Args:
        start_month: First month of the window (0=January)
        months: Number of months in the window

    Returns:
        List of month indices, e.g. month_window(10, 4) == [10, 11, 0, 1]
    """
    return [(start_month + offset) % 12 for offset in range(max(0, months))]

def month_label(month: int) -> str:
    """Two-digit label ('01'..'12') for a 1-based month number."""
    return f"{month:02d}"
