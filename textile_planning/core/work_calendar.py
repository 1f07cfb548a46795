# textile_planning/core/work_calendar.py
from datetime import date
from typing import Dict, Iterable, Optional, Set

from ..utils.date_utils import DEFAULT_WEEKEND_DAYS, convert_to_date

def _line_key(line):
    """Accept either a production line object or its id."""
    return getattr(line, 'id', line)

class HolidayCalendar:
    """Answers whether a date is a working day for a given production line.

    Built once from a snapshot of holiday rows. A holiday row needs a ``date``,
    an ``is_global`` flag and, for line-specific holidays, ``line_ids``.
    """

    def __init__(self, holidays: Iterable = (), weekend_days: Iterable[int] = DEFAULT_WEEKEND_DAYS):
        self.weekend_days = tuple(weekend_days)
        self._global_dates: Set[date] = set()
        self._line_dates: Dict[object, Set[date]] = {}

        for holiday in holidays:
            self.add_holiday(
                holiday.date,
                is_global=getattr(holiday, 'is_global', True),
                line_ids=getattr(holiday, 'line_ids', None)
            )

    def add_holiday(self, holiday_date, is_global: bool = True, line_ids: Optional[Iterable] = None):
        """Register a holiday, globally or for the given lines."""
        holiday_date = convert_to_date(holiday_date)

        if is_global:
            self._global_dates.add(holiday_date)
            return

        for line_id in line_ids or ():
            self._line_dates.setdefault(line_id, set()).add(holiday_date)

    def is_weekend(self, target_date: date) -> bool:
        return target_date.weekday() in self.weekend_days

    def is_holiday(self, line, target_date: date) -> bool:
        """True when a global holiday or a holiday of ``line`` falls on the date."""
        if target_date in self._global_dates:
            return True
        return target_date in self._line_dates.get(_line_key(line), ())

    def is_non_working_day(self, line, target_date: date) -> bool:
        return self.is_weekend(target_date) or self.is_holiday(line, target_date)

def is_non_working_day(line, target_date: date, holidays: Iterable = (),
                       weekend_days: Iterable[int] = DEFAULT_WEEKEND_DAYS) -> bool:
    """Check a single date against weekends and the holiday rows.

    Args:
        line: Production line (or its id)
        target_date: Date to check
        holidays: Holiday rows
        weekend_days: Weekday numbers treated as weekend (0=Monday)

    Returns:
        True if nothing can be produced on the date
    """
    return HolidayCalendar(holidays, weekend_days).is_non_working_day(line, target_date)
