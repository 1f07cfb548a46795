# textile_planning/core/recalculation.py
from collections import OrderedDict, namedtuple
from typing import Dict, Iterable, List, Optional

from .scheduler import DEFAULT_MAX_DAY_STEPS, AllocationRecord, calculate_planning
from .work_calendar import HolidayCalendar

RecalculatedPlan = namedtuple('RecalculatedPlan', ['purchase_id', 'start_date', 'pending_qty', 'result'])

def group_allocations_by_purchase(allocations: Iterable) -> Dict[object, List]:
    """Group allocation entries by owning purchase, each group in date order."""
    groups = OrderedDict()

    for allocation in allocations:
        groups.setdefault(allocation.purchase_id, []).append(allocation)

    for purchase_id, entries in groups.items():
        entries.sort(key=lambda a: (a.planned_date, a.order_index or 0))

    return groups

def replay_sequence(groups: Dict[object, List]) -> List[object]:
    """Order in which purchases are re-planned.

    Earliest originally planned date first, then the lowest intra-day index,
    then purchase id, so the replay is deterministic.
    """
    def sort_key(purchase_id):
        entries = groups[purchase_id]
        first = entries[0]
        return (first.planned_date, min(a.order_index or 0 for a in entries), purchase_id)

    return sorted(groups, key=sort_key)

def recalculate_line_plans(
    line,
    line_allocations: Iterable,
    pending_by_purchase: Optional[Dict[object, float]] = None,
    calendar: Optional[HolidayCalendar] = None,
    max_day_steps: int = DEFAULT_MAX_DAY_STEPS
) -> List[RecalculatedPlan]:
    """Regenerate every plan of a line after its capacity changed.

    All current entries are discarded and each purchase is replayed through
    the scheduler from the earliest date it previously used, against the
    progressively refilled ledger. Totals per purchase are preserved, exact
    day placement is not: later purchases may slide if an earlier one grew.

    Args:
        line: Production line with its new capacity
        line_allocations: Current allocation entries of the line
        pending_by_purchase: Quantity to replan per purchase id; falls back to
            the sum of the purchase's existing entries
        calendar: Holiday calendar
        max_day_steps: Scheduler safety bound

    Returns:
        One RecalculatedPlan per purchase, in replay order
    """
    pending_by_purchase = pending_by_purchase or {}
    groups = group_allocations_by_purchase(
        a for a in line_allocations if a.line_id == line.id
    )

    ledger = []
    plans = []

    for purchase_id in replay_sequence(groups):
        entries = groups[purchase_id]
        start_date = entries[0].planned_date
        pending_qty = pending_by_purchase.get(
            purchase_id, sum(a.planned_quantity for a in entries)
        )

        result = calculate_planning(
            pending_qty, line, start_date,
            calendar=calendar,
            existing_allocations=ledger,
            max_day_steps=max_day_steps
        )

        if result.success:
            ledger.extend(
                AllocationRecord(line.id, day.date, day.quantity) for day in result.days
            )

        plans.append(RecalculatedPlan(purchase_id, start_date, pending_qty, result))

    return plans
