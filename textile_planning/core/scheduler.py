# textile_planning/core/scheduler.py
"""Greedy day-by-day allocation of an order onto a production line calendar."""
from collections import namedtuple
from datetime import date
from typing import Iterable, List, Optional

from .capacity import available_capacity
from .work_calendar import HolidayCalendar
from ..utils.date_utils import add_days

DEFAULT_MAX_DAY_STEPS = 365

LINE_NOT_FOUND_MESSAGE = 'Production line not found'
TIMEFRAME_EXCEEDED_MESSAGE = 'Unable to plan within reasonable timeframe'

# Lightweight allocation entry for ledgers that are not backed by stored rows
AllocationRecord = namedtuple('AllocationRecord', ['line_id', 'planned_date', 'planned_quantity'])

class DayPlan:
    """Quantity allocated to one calendar day."""

    def __init__(self, date: date, quantity: float, remaining_capacity: float):
        self.date = date
        self.quantity = quantity
        self.remaining_capacity = remaining_capacity

    def __repr__(self):
        return f"DayPlan(date={self.date}, quantity={self.quantity}, remaining_capacity={self.remaining_capacity})"

    def to_dict(self):
        return {
            'date': self.date.isoformat(),
            'quantity': self.quantity,
            'remaining_capacity': self.remaining_capacity
        }

class PlanningResult:
    """Outcome of a planning attempt.

    ``days`` is only meaningful when ``success`` is True; failed attempts carry
    an explanatory ``message`` and must not be persisted.
    """

    def __init__(self, success: bool, days: Optional[List[DayPlan]] = None, message: Optional[str] = None):
        self.success = success
        self.days = days or []
        self.message = message

    @classmethod
    def failure(cls, message: str) -> 'PlanningResult':
        return cls(False, [], message)

    @property
    def total_quantity(self) -> float:
        return sum(day.quantity for day in self.days)

    @property
    def start_date(self) -> Optional[date]:
        return self.days[0].date if self.days else None

    @property
    def end_date(self) -> Optional[date]:
        return self.days[-1].date if self.days else None

    def to_dict(self):
        result = {
            'success': self.success,
            'days': [day.to_dict() for day in self.days]
        }
        if self.message:
            result['message'] = self.message
        return result

def calculate_planning(
    pending_qty: float,
    line,
    start_date: date,
    calendar: Optional[HolidayCalendar] = None,
    existing_allocations: Iterable = (),
    max_day_steps: int = DEFAULT_MAX_DAY_STEPS
) -> PlanningResult:
    """Spread ``pending_qty`` over the line's working days starting at ``start_date``.

    Days are visited in chronological order. Non-working days are skipped, a
    day with headroom receives ``min(remaining, headroom)`` and the walk always
    advances one calendar day, so a fully booked day never stalls the loop.

    Args:
        pending_qty: Quantity to place
        line: Production line (needs ``id``, ``capacity`` and ``is_active``), or None
        start_date: First candidate date; skipped if it is not a working day
        calendar: Holiday calendar for the line (weekends only when omitted)
        existing_allocations: Allocation entries already committed on the store
        max_day_steps: Number of calendar days examined before giving up

    Returns:
        PlanningResult with one DayPlan per day that received quantity
    """
    if line is None:
        return PlanningResult.failure(LINE_NOT_FOUND_MESSAGE)

    if getattr(line, 'is_active', True) is False:
        return PlanningResult.failure(f"Production line {line.name} is not active")

    if calendar is None:
        calendar = HolidayCalendar()

    remaining = max(0, pending_qty or 0)
    current_date = start_date
    ledger = [a for a in existing_allocations if a.line_id == line.id]
    days: List[DayPlan] = []
    steps = 0

    while remaining > 0:
        if steps >= max_day_steps:
            return PlanningResult.failure(TIMEFRAME_EXCEEDED_MESSAGE)
        steps += 1

        if not calendar.is_non_working_day(line, current_date):
            available = available_capacity(line, current_date, ledger)

            if available > 0:
                quantity = min(remaining, available)
                days.append(DayPlan(current_date, quantity, available - quantity))
                ledger.append(AllocationRecord(line.id, current_date, quantity))
                remaining -= quantity

        current_date = add_days(current_date, 1)

    return PlanningResult(True, days)
