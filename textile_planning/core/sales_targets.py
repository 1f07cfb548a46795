# textile_planning/core/sales_targets.py
"""Customer sales targets derived from the same months of earlier years."""
import math
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from .matching import CleanedNameMatcher, ProductMatcher
from ..utils.date_utils import month_label

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

class TargetItem:
    """Quantity and value target for one product category."""

    def __init__(self, product_category, quantity=0.0, value=0.0, initial_quantity=0.0, initial_value=0.0):
        self.product_category = product_category
        self.quantity = quantity
        self.value = value
        self.initial_quantity = initial_quantity
        self.initial_value = initial_value

    @property
    def unit_price(self) -> float:
        if self.initial_quantity > 0:
            return self.initial_value / self.initial_quantity
        return 0.0

    def with_quantity(self, quantity) -> 'TargetItem':
        """Copy with a new whole quantity and the value scaled at the base unit price."""
        # Rounded first so 50 * 1.1 stays 55 instead of climbing to 56
        quantity = math.ceil(round(quantity or 0, 6))
        return TargetItem(
            self.product_category, quantity, quantity * self.unit_price,
            self.initial_quantity, self.initial_value
        )

    def to_dict(self):
        return {
            'product_category': self.product_category,
            'quantity': self.quantity,
            'value': self.value,
            'initial_quantity': self.initial_quantity,
            'initial_value': self.initial_value
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'TargetItem':
        return cls(
            data.get('product_category'),
            data.get('quantity', 0),
            data.get('value', 0),
            data.get('initial_quantity', 0),
            data.get('initial_value', 0)
        )

class CategoryResolver:
    """Looks up the catalogue category of a sales line by product name.

    The catalogue's sub category wins over the main category; lines whose
    product is not found keep the category they were recorded with.
    """

    def __init__(self, products: Iterable = (), matcher: Optional[ProductMatcher] = None):
        self.products = list(products)
        self.matcher = matcher or CleanedNameMatcher()

    def resolve(self, product_name: Optional[str], fallback: Optional[str]) -> Optional[str]:
        if not self.products or not product_name:
            return fallback

        product = self.matcher.best_match(product_name, self.products)
        if product is None:
            return fallback

        return product.sub_category or product.product_category or fallback

def _month_of(record) -> str:
    return month_label(record.date_order.month)

def historical_category_totals(
    invoices: Iterable,
    customer: str,
    months: Iterable[str],
    years: Iterable,
    resolver: Optional[CategoryResolver] = None
) -> Dict[str, Dict[str, TargetItem]]:
    """Delivered quantity and value per year and category for one customer.

    Args:
        invoices: Sales records with partner_name, date_order and lines
        customer: Partner name, matched exactly
        months: Selected months as ``"MM"`` strings
        years: Years to include
        resolver: Category resolver; line categories are used as-is when omitted

    Returns:
        Mapping year (``"YYYY"``) to an ordered mapping category -> TargetItem
    """
    resolver = resolver or CategoryResolver()
    months = set(months)
    years = {str(year) for year in years}
    totals = OrderedDict()

    if not months:
        return totals

    for invoice in invoices:
        if invoice.partner_name != customer or invoice.date_order is None:
            continue

        year = str(invoice.date_order.year)
        if year not in years or _month_of(invoice) not in months:
            continue

        per_category = totals.setdefault(year, OrderedDict())
        for line in invoice.lines or ():
            category = resolver.resolve(line.product_name, line.product_category)
            item = per_category.setdefault(category, TargetItem(category))
            item.quantity += line.qty_delivered or 0
            item.value += line.price_subtotal or 0

    return totals

def base_targets(year_totals: Dict[str, TargetItem]) -> List[TargetItem]:
    """Turn one year's category totals into whole-unit targets."""
    items = []
    for item in year_totals.values():
        quantity = math.ceil(item.quantity)
        items.append(TargetItem(item.product_category, quantity, item.value, quantity, item.value))
    return items

def apply_percentage_increase(items: Iterable[TargetItem], percentage: float) -> List[TargetItem]:
    return [item.with_quantity(item.quantity * (1 + percentage / 100.0)) for item in items]

def build_targets(year_totals: Dict[str, TargetItem], percentage_increase: float = 0.0) -> List[TargetItem]:
    """Targets for a year's category totals raised by ``percentage_increase`` percent."""
    items = base_targets(year_totals)
    if percentage_increase:
        items = apply_percentage_increase(items, percentage_increase)
    return items

def target_totals(items: Iterable[TargetItem]):
    items = list(items)
    return sum(item.quantity for item in items), sum(item.value for item in items)

def target_vs_actual(
    actual_sales: Iterable,
    targets: Iterable,
    selected_year: Optional[str] = None,
    selected_months: Optional[List[str]] = None
) -> List[Dict]:
    """Compare saved targets with delivered sales per customer.

    Sales are filtered by customer, year and month (the selected months, or
    the target's own months). When months are selected the target totals are
    prorated by the share of the target's months that were selected.
    """
    actual_sales = list(actual_sales)
    comparison = []

    for target in targets:
        target_months = list(target.target_months or [])
        relevant_months = set(selected_months or target_months)

        actual_qty = 0.0
        actual_value = 0.0
        for sale in actual_sales:
            if sale.partner_name != target.customer_name or sale.date_order is None:
                continue
            if selected_year and str(sale.date_order.year) != str(selected_year):
                continue
            if _month_of(sale) not in relevant_months:
                continue

            actual_value += sale.amount_total or 0
            actual_qty += sum(line.qty_delivered or 0 for line in sale.lines or ())

        target_qty = target.adjusted_total_qty or 0
        target_value = target.adjusted_total_value or 0

        if selected_months and target_months:
            matching = [month for month in target_months if month in selected_months]
            proportion = len(matching) / len(target_months)
            target_qty = _round_half_up(target_qty * proportion)
            target_value = _round_half_up(target_value * proportion)

        comparison.append({
            'customer': target.customer_name,
            'actual_qty': actual_qty,
            'actual_value': actual_value,
            'target_qty': target_qty,
            'target_value': target_value,
            'qty_variance': actual_qty - target_qty,
            'value_variance': actual_value - target_value,
            'qty_percentage': actual_qty / target_qty * 100 if target_qty > 0 else 0,
            'value_percentage': actual_value / target_value * 100 if target_value > 0 else 0
        })

    return comparison
