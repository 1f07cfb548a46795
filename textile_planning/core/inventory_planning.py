# textile_planning/core/inventory_planning.py
"""Inventory planning: forecast demand against stock plus incoming supply.

Every row produced here is derived from snapshots handed in by the caller;
nothing is read from or written to the store.
"""
from collections import OrderedDict
from datetime import date
from typing import Dict, Iterable, List, Optional, Set

from .forecast import FORECAST_WINDOWS, forecast_same_period
from .matching import ProductMatcher, line_matches_product, make_product_key
from ..exceptions import ForecastError
from ..models import UrgencyLevel

NO_SALES_RATIO = 999.0
UNCATEGORIZED = 'Uncategorized'

DEFAULT_THRESHOLDS = {
    'critical_ratio': 0.5,
    'high_ratio': 1.0,
    'medium_ratio': 2.0,
}

class ProductShortfall:
    """Planning figures for one inventory product."""

    def __init__(self, product_id, product_name, category, on_hand, forecast, incoming, months,
                 thresholds=None):
        self.product_id = product_id
        self.product_name = product_name
        self.category = category
        self.on_hand = on_hand
        self.forecast = forecast
        self.incoming = incoming
        self.months = months
        self.shortfall = max(0, forecast - (on_hand + incoming))
        self.urgency, self.ratio = classify_urgency(on_hand, forecast, months, thresholds)

    @property
    def needs_planning(self) -> bool:
        return self.shortfall > 0

    def to_dict(self):
        return {
            'product_id': self.product_id,
            'product_name': self.product_name,
            'category': self.category,
            'on_hand': self.on_hand,
            'forecast': self.forecast,
            'incoming': self.incoming,
            'shortfall': self.shortfall,
            'urgency': self.urgency,
            'ratio': round(self.ratio, 2)
        }

class CategoryShortfall:
    """Sum of the member products of one category.

    Forecast and shortfall are additive over the members; the category
    shortfall is never recomputed from the category totals.
    """

    def __init__(self, category, products, months, thresholds=None):
        self.category = category
        self.products = rank_shortfalls(products)
        self.months = months
        self.forecast = sum(p.forecast for p in products)
        self.on_hand = sum(p.on_hand for p in products)
        self.incoming = sum(p.incoming for p in products)
        self.shortfall = sum(p.shortfall for p in products)
        self.urgency, self.ratio = classify_urgency(self.on_hand, self.forecast, months, thresholds)
        self.recommendation = recommendation_for(self.urgency, self.ratio)
        self.suppliers = []

    @property
    def name(self):
        return self.category

    @property
    def needs_planning(self) -> bool:
        return self.shortfall > 0

    def to_dict(self):
        return {
            'category': self.category,
            'forecast': self.forecast,
            'on_hand': self.on_hand,
            'incoming': self.incoming,
            'shortfall': self.shortfall,
            'urgency': self.urgency,
            'ratio': round(self.ratio, 2),
            'recommendation': self.recommendation,
            'suppliers': list(self.suppliers),
            'products': [p.to_dict() for p in self.products]
        }

class PlanningAnalysis:
    """Ranked output of ``analyze``."""

    def __init__(self, as_of, months, window, products, categories):
        self.as_of = as_of
        self.months = months
        self.window = window
        self.products = products
        self.categories = categories

    @property
    def total_shortfall(self):
        return sum(c.shortfall for c in self.categories)

    @property
    def needs_planning(self) -> List[ProductShortfall]:
        return [p for p in self.products if p.needs_planning]

    def top(self, count: int) -> List[CategoryShortfall]:
        return self.categories[:count]

    def to_dict(self):
        return {
            'as_of': self.as_of.isoformat(),
            'months': self.months,
            'window': self.window,
            'total_shortfall': self.total_shortfall,
            'categories': [c.to_dict() for c in self.categories]
        }

def classify_urgency(on_hand: float, forecast: float, months: int, thresholds: Optional[Dict] = None):
    """Urgency band from months of cover.

    The ratio is stock divided by the monthly forecast; products without any
    forecast demand get a ratio of 999 and land in the lowest band.

    Returns:
        Tuple of (urgency value, ratio)
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    monthly = forecast / months if months else 0

    ratio = on_hand / monthly if monthly > 0 else NO_SALES_RATIO

    if ratio < thresholds['critical_ratio']:
        return UrgencyLevel.CRITICAL.value, ratio
    if ratio < thresholds['high_ratio']:
        return UrgencyLevel.HIGH.value, ratio
    if ratio < thresholds['medium_ratio']:
        return UrgencyLevel.MEDIUM.value, ratio
    return UrgencyLevel.LOW.value, ratio

def recommendation_for(urgency: str, ratio: float) -> str:
    if urgency == UrgencyLevel.CRITICAL.value:
        days = int(max(ratio, 0) * 30 + 0.5)
        return f"URGENT: Only {days} days of stock remaining. Contact suppliers immediately."
    if urgency == UrgencyLevel.HIGH.value:
        return "High priority: Stock will run out within a month. Expedite production."
    if urgency == UrgencyLevel.MEDIUM.value:
        return "Monitor closely. Plan additional orders within 2 weeks."
    return f"Stock levels adequate for {int(ratio + 0.5)} months."

def rank_shortfalls(rows: Iterable) -> List:
    """Highest shortfall first; equal shortfalls ordered by name."""
    def name_of(row):
        return (getattr(row, 'product_name', None) or getattr(row, 'category', None) or '').lower()

    return sorted(rows, key=lambda row: (-row.shortfall, name_of(row)))

def active_hold_ids(holds: Iterable, as_of: date) -> Set:
    """Purchase ids whose hold is still running on ``as_of``."""
    return {
        hold.purchase_id for hold in holds
        if hold.held_until is None or hold.held_until >= as_of
    }

def open_purchases(purchases: Iterable, held_ids: Set) -> List:
    return [
        purchase for purchase in purchases
        if purchase.id not in held_ids and (purchase.pending_qty or 0) > 0
    ]

def incoming_for_product(purchases: Iterable, product_key, matcher: Optional[ProductMatcher] = None) -> float:
    """Pending quantity of the purchases that have a line referencing the product."""
    key = make_product_key(product_key)
    return sum(
        purchase.pending_qty
        for purchase in purchases
        if any(line_matches_product(line, key, matcher) for line in purchase.lines or ())
    )

def supplier_info(purchases: Iterable, category: str) -> List[Dict]:
    """Suppliers and purchase orders carrying products of ``category``."""
    wanted = (category or '').lower()
    info = []

    for purchase in purchases:
        if any((line.product_category or '').lower() == wanted for line in purchase.lines or ()):
            info.append({
                'supplier': purchase.partner_name,
                'po_number': purchase.name,
                'expected_date': purchase.expected_date.isoformat() if purchase.expected_date else None,
                'status': purchase.state
            })

    return info

def analyze(
    inventory: Iterable,
    sales: Iterable,
    purchases: Iterable,
    holds: Iterable,
    months: int,
    as_of: date,
    window: str = 'next_month',
    matcher: Optional[ProductMatcher] = None,
    excluded_categories: Iterable[str] = (),
    thresholds: Optional[Dict] = None
) -> PlanningAnalysis:
    """Rank categories and products by unmet forecast demand.

    Args:
        inventory: Inventory snapshot rows
        sales: Historical sales records
        purchases: Purchase orders with their lines
        holds: Purchase holds
        months: Forecast horizon in months
        as_of: Reference date
        window: ``'current_month'`` or ``'next_month'`` forecast window
        matcher: Product matching strategy
        excluded_categories: Category names to leave out (case-insensitive)
        thresholds: Urgency band thresholds

    Returns:
        PlanningAnalysis with products and categories ranked by shortfall
    """
    if window not in FORECAST_WINDOWS:
        raise ForecastError(f"Unknown forecast window: {window}",
                            details={'windows': sorted(FORECAST_WINDOWS)})

    start_offset = 0 if window == 'current_month' else 1
    excluded = {category.lower() for category in excluded_categories}
    sales = list(sales)
    supply = open_purchases(purchases, active_hold_ids(holds, as_of))

    by_category = OrderedDict()
    products = []

    for item in inventory:
        category = item.product_category or UNCATEGORIZED
        if category.lower() in excluded:
            continue

        key = make_product_key(item)
        forecast = forecast_same_period(sales, key, months, as_of, start_offset, matcher)
        incoming = incoming_for_product(supply, key, matcher)

        row = ProductShortfall(
            item.product_id, key.name, category,
            item.quantity_on_hand or 0, forecast, incoming, months, thresholds
        )

        products.append(row)
        by_category.setdefault(category, []).append(row)

    categories = []
    for category, members in by_category.items():
        summary = CategoryShortfall(category, members, months, thresholds)
        summary.suppliers = supplier_info(supply, category)
        categories.append(summary)

    return PlanningAnalysis(
        as_of, months, window,
        rank_shortfalls(products),
        rank_shortfalls(categories)
    )
