# textile_planning/services/sales_target_service.py
from datetime import date
from typing import Dict, Iterable, List, Optional
import logging

from sqlalchemy.orm import Session, selectinload

from ..core.sales_targets import (
    CategoryResolver, TargetItem, build_targets, historical_category_totals,
    target_totals, target_vs_actual
)
from ..exceptions import NotFoundError, ValidationError
from ..models import Invoice, Product, SalesTarget
from ..utils.date_utils import month_label

logger = logging.getLogger(__name__)

VALID_MONTHS = {month_label(month) for month in range(1, 13)}

class SalesTargetService:
    """Builds customer sales targets from history and compares them with actual sales."""

    def __init__(self, session: Session):
        self.session = session
        self._resolver = None

    @property
    def resolver(self) -> CategoryResolver:
        if self._resolver is None:
            products = self.session.query(Product).filter(Product.active.is_(True)).all()
            self._resolver = CategoryResolver(products)
        return self._resolver

    def _validate_months(self, months: Iterable[str]) -> List[str]:
        months = sorted(set(months))
        invalid = [month for month in months if month not in VALID_MONTHS]
        if not months or invalid:
            raise ValidationError("Select at least one month between 01 and 12",
                                  details={'months': invalid or months})
        return months

    def get_customer_sales(self, customer: str) -> List[Invoice]:
        return (
            self.session.query(Invoice)
            .options(selectinload(Invoice.lines))
            .filter(Invoice.partner_name == customer)
            .order_by(Invoice.date_order)
            .all()
        )

    def historical_totals(self, customer: str, months: Iterable[str], years: Iterable) -> Dict[str, Dict[str, TargetItem]]:
        """Delivered quantity and value per year and category for the selected months."""
        months = self._validate_months(months)
        return historical_category_totals(
            self.get_customer_sales(customer), customer, months, years, self.resolver
        )

    def propose_targets(self, customer: str, months: Iterable[str], base_year,
                        percentage_increase: float = 0.0) -> List[TargetItem]:
        """Targets from the selected months of ``base_year`` raised by a percentage."""
        base_year = str(base_year)
        totals = self.historical_totals(customer, months, [base_year])
        return build_targets(totals.get(base_year, {}), percentage_increase)

    def save_target(self, customer: str, target_year, months: Iterable[str],
                    items: Iterable[TargetItem]) -> SalesTarget:
        """Store a customer's targets; totals are the sums of the category rows."""
        months = self._validate_months(months)
        items = list(items)
        total_qty, total_value = target_totals(items)

        target = SalesTarget(
            customer_name=customer,
            target_year=str(target_year),
            target_months=months,
            target_data=[item.to_dict() for item in items],
            adjusted_total_qty=total_qty,
            adjusted_total_value=total_value
        )

        try:
            self.session.add(target)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(
            f"Saved sales target for {customer} {target_year} ({','.join(months)}): "
            f"{total_qty} units, value {total_value:.2f}"
        )
        return target

    def get_targets(self, customer: Optional[str] = None, target_year=None) -> List[SalesTarget]:
        query = self.session.query(SalesTarget)
        if customer:
            query = query.filter(SalesTarget.customer_name == customer)
        if target_year:
            query = query.filter(SalesTarget.target_year == str(target_year))
        return query.order_by(SalesTarget.customer_name, SalesTarget.id).all()

    def delete_target(self, target_id: int) -> None:
        target = self.session.get(SalesTarget, target_id)
        if target is None:
            raise NotFoundError(f"Sales target with ID {target_id} not found")
        self.session.delete(target)
        self.session.commit()

    def target_vs_actual(self, target_year=None, months: Optional[Iterable[str]] = None) -> List[Dict]:
        """Actual delivered quantity and value against the saved targets."""
        selected_months = self._validate_months(months) if months else None
        targets = self.get_targets(target_year=target_year)

        customers = {target.customer_name for target in targets}
        query = self.session.query(Invoice).options(selectinload(Invoice.lines))
        if customers:
            query = query.filter(Invoice.partner_name.in_(customers))
        if target_year:
            year = int(target_year)
            query = query.filter(Invoice.date_order >= date(year, 1, 1),
                                 Invoice.date_order <= date(year, 12, 31))

        return target_vs_actual(
            query.all() if customers else [],
            targets,
            selected_year=str(target_year) if target_year else None,
            selected_months=selected_months
        )
