# textile_planning/services/planning_service.py
from collections import defaultdict
from contextlib import ExitStack, contextmanager
from datetime import date
from typing import Dict, List, Optional
import logging
import threading

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ..config import config
from ..core.recalculation import recalculate_line_plans
from ..core.scheduler import LINE_NOT_FOUND_MESSAGE, PlanningResult, calculate_planning
from ..core.work_calendar import HolidayCalendar
from ..exceptions import NotFoundError, SchedulingError, ValidationError
from ..logging_setup import logger as log_manager
from ..models import (
    Holiday, PlannedProduction, PlannedStatus, ProductionLine, Purchase,
    PurchaseHold, PurchaseState
)
from ..utils.date_utils import add_months, convert_to_date
from ..utils.validation import validate_capacity, validate_holiday, validate_production_line

logger = logging.getLogger(__name__)

_locks_guard = threading.Lock()
_line_locks: Dict[int, threading.Lock] = {}
_purchase_locks: Dict[int, threading.Lock] = {}

def _lock_for(registry: Dict[int, threading.Lock], key: int) -> threading.Lock:
    with _locks_guard:
        lock = registry.get(key)
        if lock is None:
            lock = registry[key] = threading.Lock()
        return lock

def line_lock(line_id: int) -> threading.Lock:
    """Process-wide lock serialising planning writes for one production line."""
    return _lock_for(_line_locks, line_id)

def purchase_lock(purchase_id: int) -> threading.Lock:
    """Process-wide lock serialising state changes of one purchase.

    Always taken before any line lock.
    """
    return _lock_for(_purchase_locks, purchase_id)

class ProductionPlanningService:
    """Plans purchase orders onto production lines and keeps the plans consistent."""

    def __init__(self, session: Session):
        """Initialize the planning service.

        Args:
            session: Database session
        """
        self.session = session
        self._scheduling = config.scheduling_config
        self._planning = config.planning_config

    @property
    def max_day_steps(self) -> int:
        return self._scheduling['max_day_steps']

    def get_purchase(self, purchase_id: int, for_update: bool = False) -> Purchase:
        """Load a purchase; ``for_update`` locks the row and re-reads it from the store.

        Raises:
            NotFoundError: If the purchase does not exist
        """
        if for_update:
            purchase = (
                self.session.query(Purchase)
                .filter(Purchase.id == purchase_id)
                .with_for_update()
                .populate_existing()
                .one_or_none()
            )
        else:
            purchase = self.session.get(Purchase, purchase_id)

        if purchase is None:
            raise NotFoundError(f"Purchase with ID {purchase_id} not found")
        return purchase

    def get_production_line(self, line_id: int, for_update: bool = False) -> Optional[ProductionLine]:
        query = self.session.query(ProductionLine).filter(ProductionLine.id == line_id)
        if for_update:
            query = query.with_for_update()
        return query.one_or_none()

    def get_production_lines(self, active_only: bool = False) -> List[ProductionLine]:
        query = self.session.query(ProductionLine)
        if active_only:
            query = query.filter(ProductionLine.is_active.is_(True))
        return query.order_by(ProductionLine.name).all()

    def create_production_line(self, name: str, capacity: int, description: Optional[str] = None) -> ProductionLine:
        """Create a production line.

        Raises:
            ValidationError: If the name or capacity is invalid
        """
        line = ProductionLine(name=(name or '').strip(), capacity=capacity, description=description, is_active=True)

        errors = validate_production_line(line)
        if errors:
            raise ValidationError("Invalid production line", details=errors)
        line.capacity = int(line.capacity)

        try:
            self.session.add(line)
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            raise SchedulingError(f"Failed to create production line: {str(e)}") from e

        logger.info(f"Created production line {line.name} with capacity {line.capacity}")
        return line

    def add_holiday(self, holiday_date, name: str, line_ids: Optional[List[int]] = None) -> Holiday:
        """Add a holiday for every line, or only for ``line_ids`` when given.

        Existing plans are left as they are; recalculate the affected lines
        to move allocations off the new holiday.

        Raises:
            ValidationError: If the date is missing or a line-specific holiday has no lines
            NotFoundError: If one of the lines does not exist
        """
        holiday_date = convert_to_date(holiday_date) if holiday_date else None
        holiday = Holiday(name=name or 'Holiday', date=holiday_date, is_global=not line_ids)

        for line_id in line_ids or ():
            line = self.get_production_line(line_id)
            if line is None:
                raise NotFoundError(f"Production line with ID {line_id} not found")
            holiday.lines.append(line)

        errors = validate_holiday(holiday)
        if errors:
            raise ValidationError("Invalid holiday", details=errors)

        try:
            self.session.add(holiday)
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            raise SchedulingError(f"Failed to add holiday: {str(e)}") from e

        logger.info(f"Added holiday {holiday.name} on {holiday.date} "
                    f"({'all lines' if holiday.is_global else holiday.line_ids})")
        return holiday

    def get_active_holds(self, as_of: Optional[date] = None) -> List[PurchaseHold]:
        as_of = as_of or date.today()
        return self.session.query(PurchaseHold).filter(PurchaseHold.held_until >= as_of).all()

    def get_available_purchases(self, as_of: Optional[date] = None) -> List[Purchase]:
        """Confirmed purchases with pending quantity that are neither planned nor held."""
        held_ids = {hold.purchase_id for hold in self.get_active_holds(as_of)}

        purchases = (
            self.session.query(Purchase)
            .options(selectinload(Purchase.lines))
            .filter(Purchase.state == PurchaseState.PURCHASE.value)
            .order_by(Purchase.date_order, Purchase.id)
            .all()
        )

        return [p for p in purchases if p.id not in held_ids and p.pending_qty > 0]

    def get_line_plan(self, line_id: int, from_date: Optional[date] = None,
                      to_date: Optional[date] = None) -> List[PlannedProduction]:
        query = self.session.query(PlannedProduction).filter(PlannedProduction.line_id == line_id)

        if from_date is not None:
            query = query.filter(PlannedProduction.planned_date >= from_date)
        if to_date is not None:
            query = query.filter(PlannedProduction.planned_date <= to_date)

        return query.order_by(PlannedProduction.planned_date, PlannedProduction.order_index).all()

    def build_calendar(self, line_id: Optional[int] = None) -> HolidayCalendar:
        """Holiday calendar with the global holidays and those of ``line_id``."""
        query = self.session.query(Holiday).options(selectinload(Holiday.lines))

        if line_id is not None:
            query = query.filter(or_(
                Holiday.is_global.is_(True),
                Holiday.lines.any(ProductionLine.id == line_id)
            ))

        return HolidayCalendar(query.all(), weekend_days=self._scheduling['weekend_days'])

    def preview_plan(self, purchase_id: int, line_id: int, start_date) -> PlanningResult:
        """Run the scheduler for a purchase without writing anything."""
        purchase = self.get_purchase(purchase_id)
        line = self.get_production_line(line_id)
        if line is None:
            return PlanningResult.failure(LINE_NOT_FOUND_MESSAGE)

        start_date = convert_to_date(start_date)
        return calculate_planning(
            purchase.pending_qty, line, start_date,
            calendar=self.build_calendar(line.id),
            existing_allocations=self.get_line_plan(line.id, from_date=start_date),
            max_day_steps=self.max_day_steps
        )

    def plan_purchase_order(
        self,
        purchase_id: int,
        line_id: int,
        start_date,
        insert_index: Optional[int] = None
    ) -> PlanningResult:
        """Allocate a purchase's pending quantity to a line from ``start_date`` on.

        Reading the line's current allocations, scheduling and writing the
        new entries happen under the purchase and line locks and in one
        transaction. On a failed result nothing is written.

        Args:
            purchase_id: Purchase ID
            line_id: Production line ID
            start_date: First candidate date
            insert_index: Position of the new entries within their days; appended when omitted

        Returns:
            PlanningResult

        Raises:
            NotFoundError: If the purchase does not exist
            ValidationError: If the purchase is not waiting to be planned
        """
        start_date = convert_to_date(start_date)

        with purchase_lock(purchase_id), line_lock(line_id):
            purchase = self.get_purchase(purchase_id, for_update=True)
            if purchase.state != PurchaseState.PURCHASE.value:
                raise ValidationError(
                    f"Purchase {purchase.name} cannot be planned in state {purchase.state}",
                    details={'state': purchase.state}
                )

            line = self.get_production_line(line_id, for_update=True)
            if line is None:
                result = PlanningResult.failure(LINE_NOT_FOUND_MESSAGE)
                log_manager.planning_log(purchase.name, f"#{line_id}", result)
                return result

            existing = self.get_line_plan(line.id, from_date=start_date)
            result = calculate_planning(
                purchase.pending_qty, line, start_date,
                calendar=self.build_calendar(line.id),
                existing_allocations=existing,
                max_day_steps=self.max_day_steps
            )

            log_manager.planning_log(purchase.name, line.name, result)

            if not result.success:
                self.session.rollback()
                return result

            slots = defaultdict(int)
            for entry in existing:
                slots[entry.planned_date] += 1

            try:
                for index, day in enumerate(result.days):
                    order_index = insert_index + index if insert_index is not None else slots[day.date]
                    self.session.add(PlannedProduction(
                        purchase_id=purchase.id,
                        line_id=line.id,
                        planned_date=day.date,
                        planned_quantity=day.quantity,
                        order_index=order_index,
                        status=PlannedStatus.PLANNED.value
                    ))

                purchase.state = PurchaseState.PLANNED.value
                self.session.commit()
            except Exception as e:
                self.session.rollback()
                raise SchedulingError(f"Failed to save plan for purchase {purchase.name}: {str(e)}") from e

        return result

    @contextmanager
    def _purchase_write_locks(self, purchase_id: int):
        """Purchase lock, then the locks of the lines holding its entries in id order."""
        with ExitStack() as stack:
            stack.enter_context(purchase_lock(purchase_id))

            line_ids = sorted(
                line_id for (line_id,) in
                self.session.query(PlannedProduction.line_id)
                .filter(PlannedProduction.purchase_id == purchase_id)
                .distinct()
            )
            for line_id in line_ids:
                stack.enter_context(line_lock(line_id))

            yield

    def _delete_purchase_entries(self, purchase: Purchase) -> int:
        return (
            self.session.query(PlannedProduction)
            .filter(PlannedProduction.purchase_id == purchase.id)
            .delete(synchronize_session=False)
        )

    def unplan_purchase(self, purchase_id: int) -> int:
        """Remove every allocation entry of a purchase and send it back to ``purchase``.

        Returns:
            Number of allocation entries deleted
        """
        with self._purchase_write_locks(purchase_id):
            purchase = self.get_purchase(purchase_id, for_update=True)

            try:
                deleted = self._delete_purchase_entries(purchase)
                purchase.state = PurchaseState.PURCHASE.value
                self.session.commit()
            except Exception as e:
                self.session.rollback()
                raise SchedulingError(f"Failed to unplan purchase {purchase.name}: {str(e)}") from e

        logger.info(f"Moved purchase {purchase.name} back to unplanned ({deleted} entries removed)")
        return deleted

    def hold_purchase(
        self,
        purchase_id: int,
        held_until=None,
        months: Optional[int] = None,
        reason: Optional[str] = None,
        as_of: Optional[date] = None
    ) -> PurchaseHold:
        """Exclude a purchase from incoming supply until ``held_until``.

        Without an explicit date the hold runs ``months`` (default from
        ``PLANNING.hold_months``) from ``as_of``. A planned purchase loses its
        allocation entries.
        """
        if held_until is None:
            months = months if months is not None else self._planning['hold_months']
            held_until = add_months(as_of or date.today(), months)
        held_until = convert_to_date(held_until)

        with self._purchase_write_locks(purchase_id):
            purchase = self.get_purchase(purchase_id, for_update=True)

            try:
                hold = self.session.query(PurchaseHold).filter(PurchaseHold.purchase_id == purchase.id).one_or_none()
                if hold is None:
                    hold = PurchaseHold(purchase_id=purchase.id)
                    self.session.add(hold)
                hold.held_until = held_until
                hold.reason = reason

                self._delete_purchase_entries(purchase)
                if purchase.state == PurchaseState.PLANNED.value:
                    purchase.state = PurchaseState.PURCHASE.value
                self.session.commit()
            except Exception as e:
                self.session.rollback()
                raise SchedulingError(f"Failed to hold purchase {purchase.name}: {str(e)}") from e

        logger.info(f"Purchase {purchase.name} held until {held_until.isoformat()}")
        return hold

    def release_hold(self, purchase_id: int) -> bool:
        deleted = (
            self.session.query(PurchaseHold)
            .filter(PurchaseHold.purchase_id == purchase_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted > 0

    def release_expired_holds(self, as_of: Optional[date] = None) -> int:
        """Delete holds whose ``held_until`` lies before ``as_of``."""
        as_of = as_of or date.today()

        try:
            released = (
                self.session.query(PurchaseHold)
                .filter(PurchaseHold.held_until < as_of)
                .delete(synchronize_session=False)
            )
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            raise SchedulingError(f"Failed to release expired holds: {str(e)}") from e

        if released:
            logger.info(f"Released {released} expired purchase hold(s)")
        return released

    def update_line_capacity(self, line_id: int, capacity) -> Dict:
        """Change a line's daily capacity and regenerate its plans.

        Raises:
            ValidationError: If the capacity is not a positive whole number
            NotFoundError: If the line does not exist
            ValidationError: If the line is inactive and still holds allocation entries
        """
        errors = validate_capacity(capacity)
        if errors:
            raise ValidationError("Invalid capacity", details=errors)

        return self.recalculate_line(line_id, capacity=int(capacity))

    def recalculate_line(self, line_id: int, capacity=None) -> Dict:
        """Discard and replay every allocation entry of a line.

        Purchases that no longer fit within the scheduling horizon are sent
        back to ``purchase`` and listed under ``failed``.

        Args:
            line_id: Production line ID
            capacity: New capacity to store before replaying

        Returns:
            Dictionary with replanned and failed purchases

        Raises:
            NotFoundError: If the line does not exist
            ValidationError: If the line is inactive and still holds allocation entries
        """
        with line_lock(line_id):
            line = self.get_production_line(line_id, for_update=True)
            if line is None:
                raise NotFoundError(f"Production line with ID {line_id} not found")

            old_capacity = line.capacity
            entries = self.get_line_plan(line.id)

            if line.is_active is False and entries:
                raise ValidationError(
                    f"Production line {line.name} is not active; activate it before replanning its orders",
                    details={'line_id': line.id, 'entries': len(entries)}
                )

            try:
                if capacity is not None:
                    line.capacity = capacity

                plans = recalculate_line_plans(
                    line, entries,
                    calendar=self.build_calendar(line.id),
                    max_day_steps=self.max_day_steps
                )

                for entry in entries:
                    self.session.delete(entry)
                self.session.flush()

                replanned = []
                failed = []
                slots = defaultdict(int)

                for plan in plans:
                    purchase = self.session.get(Purchase, plan.purchase_id)

                    if not plan.result.success:
                        purchase.state = PurchaseState.PURCHASE.value
                        failed.append({'purchase_id': purchase.id, 'name': purchase.name,
                                       'message': plan.result.message})
                        log_manager.planning_log(purchase.name, line.name, plan.result)
                        continue

                    for day in plan.result.days:
                        self.session.add(PlannedProduction(
                            purchase_id=purchase.id,
                            line_id=line.id,
                            planned_date=day.date,
                            planned_quantity=day.quantity,
                            order_index=slots[day.date],
                            status=PlannedStatus.PLANNED.value
                        ))
                        slots[day.date] += 1

                    replanned.append({'purchase_id': purchase.id, 'name': purchase.name,
                                      'quantity': plan.result.total_quantity,
                                      'start_date': plan.result.start_date,
                                      'end_date': plan.result.end_date})

                self.session.commit()
            except Exception as e:
                self.session.rollback()
                raise SchedulingError(f"Failed to recalculate production line {line_id}: {str(e)}") from e

        logger.info(
            f"Recalculated line {line.name} (capacity {old_capacity} -> {line.capacity}): "
            f"{len(replanned)} replanned, {len(failed)} failed"
        )

        return {
            'line_id': line.id,
            'old_capacity': old_capacity,
            'capacity': line.capacity,
            'replanned': replanned,
            'failed': failed
        }
