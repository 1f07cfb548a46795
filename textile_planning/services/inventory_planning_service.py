# textile_planning/services/inventory_planning_service.py
from datetime import date
from typing import Dict, Iterable, List, Optional
import logging

from sqlalchemy.orm import Session, selectinload

from ..config import config
from ..core.forecast import FORECAST_WINDOWS, average_monthly_sales
from ..core.inventory_planning import PlanningAnalysis, analyze
from ..core.matching import ProductMatcher
from ..exceptions import ForecastError
from ..models import InventoryItem, Invoice, Purchase, PurchaseHold, PurchaseState
from ..utils.date_utils import add_days

logger = logging.getLogger(__name__)

OPEN_PURCHASE_STATES = (PurchaseState.PURCHASE.value, PurchaseState.PLANNED.value)

class InventoryPlanningService:
    """Loads inventory, sales and purchase snapshots and runs the planning analysis."""

    def __init__(self, session: Session, matcher: Optional[ProductMatcher] = None,
                 excluded_categories: Optional[Iterable[str]] = None):
        """Initialize the inventory planning service.

        Args:
            session: Database session
            matcher: Product matching strategy
            excluded_categories: Categories hidden from the analysis; read from
                ``PLANNING.excluded_categories`` when omitted
        """
        self.session = session
        self.matcher = matcher
        self._planning = config.planning_config
        if excluded_categories is None:
            excluded_categories = self._planning['excluded_categories']
        self.excluded_categories = list(excluded_categories)

    @property
    def thresholds(self) -> Dict[str, float]:
        return {
            'critical_ratio': self._planning['critical_ratio'],
            'high_ratio': self._planning['high_ratio'],
            'medium_ratio': self._planning['medium_ratio'],
        }

    def get_inventory(self) -> List[InventoryItem]:
        return self.session.query(InventoryItem).order_by(InventoryItem.product_name).all()

    def get_sales(self, from_date: date, to_date: date) -> List[Invoice]:
        return (
            self.session.query(Invoice)
            .options(selectinload(Invoice.lines))
            .filter(Invoice.date_order >= from_date, Invoice.date_order <= to_date)
            .order_by(Invoice.date_order)
            .all()
        )

    def get_sales_for_comparison_year(self, as_of: date) -> List[Invoice]:
        """Sales of the calendar year preceding ``as_of``."""
        year = as_of.year - 1
        return self.get_sales(date(year, 1, 1), date(year, 12, 31))

    def get_open_purchases(self) -> List[Purchase]:
        return (
            self.session.query(Purchase)
            .options(selectinload(Purchase.lines))
            .filter(Purchase.state.in_(OPEN_PURCHASE_STATES))
            .all()
        )

    def get_holds(self) -> List[PurchaseHold]:
        return self.session.query(PurchaseHold).all()

    def analyze(self, months: Optional[int] = None, as_of: Optional[date] = None,
                window: str = 'next_month') -> PlanningAnalysis:
        """Run the inventory planning analysis over the current snapshots.

        Args:
            months: Forecast horizon; ``PLANNING.default_months`` when omitted
            as_of: Reference date, today when omitted
            window: Forecast window, ``'current_month'`` or ``'next_month'``

        Returns:
            PlanningAnalysis ranked by shortfall
        """
        months = months or self._planning['default_months']
        as_of = as_of or date.today()

        if months <= 0:
            raise ForecastError("Forecast horizon must be at least one month", details={'months': months})

        result = analyze(
            self.get_inventory(),
            self.get_sales_for_comparison_year(as_of),
            self.get_open_purchases(),
            self.get_holds(),
            months,
            as_of,
            window=window,
            matcher=self.matcher,
            excluded_categories=self.excluded_categories,
            thresholds=self.thresholds
        )

        logger.info(
            f"Inventory planning for {months} month(s) as of {as_of.isoformat()} ({window}): "
            f"{len(result.needs_planning)} product(s) short, total shortfall {result.total_shortfall}"
        )
        return result

    def product_forecast(self, product, months: int, as_of: Optional[date] = None,
                         window: str = 'next_month') -> float:
        """Same-period-last-year forecast for one product name or inventory row."""
        if window not in FORECAST_WINDOWS:
            raise ForecastError(f"Unknown forecast window: {window}")

        as_of = as_of or date.today()
        return FORECAST_WINDOWS[window](
            self.get_sales_for_comparison_year(as_of), product, months, as_of, matcher=self.matcher
        )

    def average_monthly_sales(self, product, as_of: Optional[date] = None) -> float:
        as_of = as_of or date.today()
        lookback_days = self._planning['sales_lookback_days']
        sales = self.get_sales(add_days(as_of, -lookback_days), as_of)
        return average_monthly_sales(sales, product, as_of, lookback_days, matcher=self.matcher)
