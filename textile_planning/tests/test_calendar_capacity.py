"""
Unit tests for the holiday calendar and the capacity ledger.
"""
import unittest
from datetime import date
from types import SimpleNamespace

from textile_planning.core.work_calendar import HolidayCalendar, is_non_working_day
from textile_planning.core.capacity import available_capacity, used_capacity, capacity_usage_by_date
from textile_planning.core.scheduler import AllocationRecord

MONDAY = date(2025, 6, 2)
TUESDAY = date(2025, 6, 3)
SATURDAY = date(2025, 6, 7)
SUNDAY = date(2025, 6, 8)

def make_line(line_id=1, capacity=100):
    return SimpleNamespace(id=line_id, name=f"Line {line_id}", capacity=capacity, is_active=True)

class TestHolidayCalendar(unittest.TestCase):
    """Test cases for working day detection."""

    def setUp(self):
        self.line = make_line(1)
        self.other_line = make_line(2)

    def test_weekends_are_non_working(self):
        calendar = HolidayCalendar()
        self.assertTrue(calendar.is_non_working_day(self.line, SATURDAY))
        self.assertTrue(calendar.is_non_working_day(self.line, SUNDAY))
        self.assertFalse(calendar.is_non_working_day(self.line, MONDAY))

    def test_global_holiday_applies_to_every_line(self):
        holiday = SimpleNamespace(date=TUESDAY, is_global=True, line_ids=[])
        calendar = HolidayCalendar([holiday])

        self.assertTrue(calendar.is_non_working_day(self.line, TUESDAY))
        self.assertTrue(calendar.is_non_working_day(self.other_line, TUESDAY))

    def test_line_holiday_only_applies_to_its_lines(self):
        holiday = SimpleNamespace(date=TUESDAY, is_global=False, line_ids=[1])
        calendar = HolidayCalendar([holiday])

        self.assertTrue(calendar.is_non_working_day(self.line, TUESDAY))
        self.assertFalse(calendar.is_non_working_day(self.other_line, TUESDAY))
        # Line ids work as well as line objects
        self.assertTrue(calendar.is_holiday(1, TUESDAY))

    def test_holiday_dates_as_strings(self):
        calendar = HolidayCalendar()
        calendar.add_holiday('2025-06-03')
        self.assertTrue(calendar.is_holiday(self.line, TUESDAY))

    def test_custom_weekend(self):
        calendar = HolidayCalendar(weekend_days=(4, 5))
        self.assertTrue(calendar.is_non_working_day(self.line, date(2025, 6, 6)))
        self.assertFalse(calendar.is_non_working_day(self.line, SUNDAY))

    def test_module_function_without_holidays(self):
        self.assertFalse(is_non_working_day(self.line, MONDAY))
        self.assertTrue(is_non_working_day(self.line, SUNDAY))

class TestCapacityLedger(unittest.TestCase):
    """Test cases for available capacity."""

    def setUp(self):
        self.line = make_line(1, capacity=100)
        self.allocations = [
            AllocationRecord(1, MONDAY, 30),
            AllocationRecord(1, MONDAY, 20),
            AllocationRecord(1, TUESDAY, 100),
            AllocationRecord(2, MONDAY, 70),
        ]

    def test_used_capacity_filters_line_and_date(self):
        self.assertEqual(used_capacity(self.line, MONDAY, self.allocations), 50)
        self.assertEqual(used_capacity(2, MONDAY, self.allocations), 70)

    def test_available_capacity(self):
        self.assertEqual(available_capacity(self.line, MONDAY, self.allocations), 50)
        self.assertEqual(available_capacity(self.line, TUESDAY, self.allocations), 0)
        self.assertEqual(available_capacity(self.line, date(2025, 6, 4), self.allocations), 100)

    def test_overbooked_day_is_negative(self):
        allocations = self.allocations + [AllocationRecord(1, TUESDAY, 10)]
        self.assertEqual(available_capacity(self.line, TUESDAY, allocations), -10)

    def test_usage_by_date(self):
        usage = capacity_usage_by_date(self.line, self.allocations)
        self.assertEqual(usage, {MONDAY: 50, TUESDAY: 100})

if __name__ == '__main__':
    unittest.main()
