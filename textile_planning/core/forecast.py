# textile_planning/core/forecast.py
"""Same-period-last-year sales forecasts.

Two window conventions are in use by the inventory reports and are kept as
separate operations on purpose: one starts at the month of the reference
date, the other at the following month. Unifying them would change the
numbers of historical reports.
"""
from collections import defaultdict
from datetime import date
from typing import Iterable, List, Optional, Tuple

from .matching import ProductMatcher, line_matches_product, make_product_key
from ..utils.date_utils import add_days, month_key, month_window

def comparison_window(as_of: date, months: int, start_offset: int = 0) -> Tuple[int, List[int]]:
    """Year and 0-based months looked at for a forecast of ``months`` months.

    The window always lies in the previous calendar year; months past December
    wrap to January of that same year.

    Args:
        as_of: Reference date
        months: Window length
        start_offset: 0 to start at the reference month, 1 to start at the next one

    Returns:
        Tuple with comparison year and the list of month indices
    """
    start_month = (as_of.month - 1 + start_offset) % 12
    return as_of.year - 1, month_window(start_month, months)

def _sum_delivered(records: Iterable, product_key, year: int, window: List[int],
                   matcher: Optional[ProductMatcher]) -> float:
    if not window:
        return 0

    key = make_product_key(product_key)
    target_months = set(window)
    total = 0.0

    for record in records:
        order_date = record.date_order
        if order_date is None or order_date.year != year:
            continue
        if (order_date.month - 1) not in target_months:
            continue

        for line in record.lines or ():
            if line_matches_product(line, key, matcher):
                total += line.qty_delivered or 0

    return total

def forecast_same_period(
    records: Iterable,
    product_key,
    months: int,
    as_of: date,
    start_offset: int = 0,
    matcher: Optional[ProductMatcher] = None
) -> float:
    """Delivered quantity for a product over the comparison window.

    Args:
        records: Sales records (``date_order`` and ``lines`` with
            ``product_id``, ``product_name``, ``qty_delivered``)
        product_key: Product name, ProductKey or inventory row
        months: Number of months to forecast
        as_of: Reference date
        start_offset: Window start relative to the reference month
        matcher: Name matching strategy for lines without product ids

    Returns:
        Sum of the delivered quantities as recorded; zero when nothing matches
    """
    year, window = comparison_window(as_of, months, start_offset)
    return _sum_delivered(records, product_key, year, window, matcher)

def forecast_from_current_month(records, product_key, months: int, as_of: date,
                                matcher: Optional[ProductMatcher] = None) -> float:
    """Forecast whose window starts at the reference month, one year back."""
    return forecast_same_period(records, product_key, months, as_of, 0, matcher)

def forecast_from_next_month(records, product_key, months: int, as_of: date,
                             matcher: Optional[ProductMatcher] = None) -> float:
    """Forecast whose window starts at the month after the reference month, one year back."""
    return forecast_same_period(records, product_key, months, as_of, 1, matcher)

FORECAST_WINDOWS = {
    'current_month': forecast_from_current_month,
    'next_month': forecast_from_next_month,
}

def average_monthly_sales(
    records: Iterable,
    product_key,
    as_of: date,
    lookback_days: int = 365,
    matcher: Optional[ProductMatcher] = None
) -> float:
    """Trailing monthly average: delivered total over distinct months with sales."""
    key = make_product_key(product_key)
    since = add_days(as_of, -lookback_days)
    monthly = defaultdict(float)

    for record in records:
        order_date = record.date_order
        if order_date is None or order_date < since or order_date > as_of:
            continue

        for line in record.lines or ():
            if line.qty_delivered and line_matches_product(line, key, matcher):
                monthly[month_key(order_date)] += line.qty_delivered

    return sum(monthly.values()) / max(len(monthly), 1)
