# textile_planning/core/capacity.py
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable

def _line_key(line):
    return getattr(line, 'id', line)

def used_capacity(line, target_date: date, allocations: Iterable) -> float:
    """Sum of planned quantities already committed to ``line`` on ``target_date``.

    Args:
        line: Production line (or its id)
        target_date: Calendar date
        allocations: Allocation entries with line_id, planned_date, planned_quantity

    Returns:
        Committed quantity
    """
    line_id = _line_key(line)
    return sum(
        allocation.planned_quantity or 0
        for allocation in allocations
        if allocation.line_id == line_id and allocation.planned_date == target_date
    )

def available_capacity(line, target_date: date, allocations: Iterable) -> float:
    """Headroom left on a line for a date.

    Not floored at zero: an over-booked day reports a negative value.
    """
    return (line.capacity or 0) - used_capacity(line, target_date, allocations)

def capacity_usage_by_date(line, allocations: Iterable) -> Dict[date, float]:
    """Committed quantity per date for one line."""
    line_id = _line_key(line)
    usage = defaultdict(float)

    for allocation in allocations:
        if allocation.line_id == line_id:
            usage[allocation.planned_date] += allocation.planned_quantity or 0

    return dict(usage)
