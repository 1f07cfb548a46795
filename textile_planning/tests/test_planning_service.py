"""
Tests for the production planning service against an in-memory database.
"""
import unittest
from collections import defaultdict
from datetime import date
from unittest.mock import PropertyMock, patch

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from textile_planning.core.scheduler import LINE_NOT_FOUND_MESSAGE, TIMEFRAME_EXCEEDED_MESSAGE
from textile_planning.exceptions import NotFoundError, ValidationError
from textile_planning.models import (
    Base, Holiday, PlannedProduction, ProductionLine, Purchase, PurchaseHold, PurchaseLine
)
from textile_planning.core.scheduler import calculate_planning
from textile_planning.services.planning_service import ProductionPlanningService, line_lock, purchase_lock

MONDAY = date(2025, 6, 2)

class TestProductionPlanningService(unittest.TestCase):
    """Test cases for ProductionPlanningService."""

    def setUp(self):
        self.engine = create_engine('sqlite://')
        Base.metadata.create_all(self.engine)
        self.session = sessionmaker(bind=self.engine)()

        self.line = ProductionLine(name='Knitting 1', capacity=100, is_active=True)
        self.other_line = ProductionLine(name='Knitting 2', capacity=100, is_active=True)
        self.session.add_all([self.line, self.other_line])
        self.po1 = self.add_purchase('PO001', 250)
        self.po2 = self.add_purchase('PO002', 120)
        self.session.commit()

        self.service = ProductionPlanningService(self.session)

    def tearDown(self):
        self.session.close()
        self.engine.dispose()

    def add_purchase(self, name, quantity, received=0):
        purchase = Purchase(name=name, partner_name='Mill Co', date_order=date(2025, 5, 1), state='purchase')
        purchase.lines.append(PurchaseLine(product_name='Cotton Tee', product_category='Tees',
                                           qty_ordered=quantity, qty_received=received))
        self.session.add(purchase)
        return purchase

    def entries_for(self, purchase):
        return (
            self.session.query(PlannedProduction)
            .filter(PlannedProduction.purchase_id == purchase.id)
            .order_by(PlannedProduction.planned_date)
            .all()
        )

    def test_plan_persists_entries(self):
        result = self.service.plan_purchase_order(self.po1.id, self.line.id, MONDAY)

        self.assertTrue(result.success)
        entries = self.entries_for(self.po1)
        self.assertEqual([(e.planned_date, e.planned_quantity) for e in entries], [
            (date(2025, 6, 2), 100), (date(2025, 6, 3), 100), (date(2025, 6, 4), 50)
        ])
        self.assertEqual(self.session.get(Purchase, self.po1.id).state, 'planned')

    def test_second_plan_fills_remaining_capacity(self):
        self.service.plan_purchase_order(self.po1.id, self.line.id, MONDAY)
        result = self.service.plan_purchase_order(self.po2.id, self.line.id, MONDAY)

        self.assertEqual([(d.date, d.quantity) for d in result.days], [
            (date(2025, 6, 4), 50), (date(2025, 6, 5), 70)
        ])

        per_day = defaultdict(float)
        for entry in self.service.get_line_plan(self.line.id):
            per_day[entry.planned_date] += entry.planned_quantity
        self.assertTrue(all(total <= 100 for total in per_day.values()))

        # Appended after the entry already on 4 June
        wednesday = [e for e in self.entries_for(self.po2) if e.planned_date == date(2025, 6, 4)][0]
        self.assertEqual(wednesday.order_index, 1)

    def test_insert_index(self):
        self.service.plan_purchase_order(self.po2.id, self.line.id, MONDAY, insert_index=3)
        self.assertEqual([e.order_index for e in self.entries_for(self.po2)], [3, 4])

    def test_line_holiday_from_store(self):
        holiday = Holiday(name='Maintenance', date=date(2025, 6, 3), is_global=False)
        holiday.lines.append(self.line)
        self.session.add(holiday)
        self.session.commit()

        result = self.service.plan_purchase_order(self.po1.id, self.line.id, MONDAY)
        self.assertEqual([d.date for d in result.days],
                         [date(2025, 6, 2), date(2025, 6, 4), date(2025, 6, 5)])

        # The other line still works that day
        result = self.service.plan_purchase_order(self.po2.id, self.other_line.id, date(2025, 6, 3))
        self.assertEqual(result.start_date, date(2025, 6, 3))

    def test_add_holiday(self):
        holiday = self.service.add_holiday('2025-06-03', 'Maintenance', line_ids=[self.other_line.id])

        self.assertFalse(holiday.is_global)
        self.assertEqual(holiday.line_ids, [self.other_line.id])
        self.assertTrue(self.service.build_calendar(self.other_line.id).is_holiday(self.other_line, date(2025, 6, 3)))
        self.assertFalse(self.service.build_calendar(self.line.id).is_holiday(self.line, date(2025, 6, 3)))

        with self.assertRaises(NotFoundError):
            self.service.add_holiday(date(2025, 6, 4), 'Audit', line_ids=[999])
        with self.assertRaises(ValidationError):
            self.service.add_holiday(None, 'Undated')

    def test_unknown_line_is_a_failure_result(self):
        result = self.service.plan_purchase_order(self.po1.id, 999, MONDAY)

        self.assertFalse(result.success)
        self.assertEqual(result.message, LINE_NOT_FOUND_MESSAGE)
        self.assertEqual(self.entries_for(self.po1), [])

    def test_failed_plan_writes_nothing(self):
        # 365 day-steps from a Monday hold 261 working days, fewer than 400 units at 1 a day
        big = self.add_purchase('PO-BIG', 400)
        self.line.capacity = 1
        self.session.commit()

        result = self.service.plan_purchase_order(big.id, self.line.id, MONDAY)

        self.assertFalse(result.success)
        self.assertEqual(result.message, TIMEFRAME_EXCEEDED_MESSAGE)
        self.assertEqual(self.entries_for(big), [])
        self.assertEqual(self.session.query(PlannedProduction).count(), 0)
        self.assertEqual(self.session.get(Purchase, big.id).state, 'purchase')

    def test_search_bound_from_config(self):
        with patch.object(ProductionPlanningService, 'max_day_steps', new_callable=PropertyMock, return_value=2):
            result = self.service.plan_purchase_order(self.po1.id, self.line.id, MONDAY)

        self.assertFalse(result.success)
        self.assertEqual(self.entries_for(self.po1), [])

    def test_unknown_purchase(self):
        with self.assertRaises(NotFoundError):
            self.service.plan_purchase_order(999, self.line.id, MONDAY)

    def test_planned_purchase_cannot_be_planned_again(self):
        self.service.plan_purchase_order(self.po1.id, self.line.id, MONDAY)

        with self.assertRaises(ValidationError):
            self.service.plan_purchase_order(self.po1.id, self.line.id, MONDAY)

    def test_preview_does_not_write(self):
        result = self.service.preview_plan(self.po1.id, self.line.id, '2025-06-02')

        self.assertTrue(result.success)
        self.assertEqual(self.entries_for(self.po1), [])

    def test_unplan(self):
        self.service.plan_purchase_order(self.po1.id, self.line.id, MONDAY)

        deleted = self.service.unplan_purchase(self.po1.id)

        self.assertEqual(deleted, 3)
        self.assertEqual(self.entries_for(self.po1), [])
        self.assertEqual(self.session.get(Purchase, self.po1.id).state, 'purchase')

    def test_hold_unplans_and_hides_purchase(self):
        self.service.plan_purchase_order(self.po1.id, self.line.id, MONDAY)

        hold = self.service.hold_purchase(self.po1.id, reason='Supplier delay', as_of=date(2025, 6, 15))

        self.assertEqual(hold.held_until, date(2025, 9, 15))
        self.assertEqual(self.entries_for(self.po1), [])
        self.assertEqual(self.session.get(Purchase, self.po1.id).state, 'purchase')

        available = self.service.get_available_purchases(as_of=date(2025, 6, 15))
        self.assertEqual([p.name for p in available], ['PO002'])

        # Holding again moves the date instead of adding a row
        self.service.hold_purchase(self.po1.id, held_until=date(2025, 7, 1))
        self.assertEqual(self.session.query(PurchaseHold).count(), 1)

    def test_release_expired_holds(self):
        self.service.hold_purchase(self.po1.id, held_until=date(2025, 6, 1))
        self.service.hold_purchase(self.po2.id, held_until=date(2025, 12, 1))

        released = self.service.release_expired_holds(date(2025, 6, 15))

        self.assertEqual(released, 1)
        self.assertEqual([h.purchase_id for h in self.session.query(PurchaseHold).all()], [self.po2.id])

    def test_available_purchases_skip_received(self):
        self.add_purchase('PO003', 50, received=50)
        self.session.commit()

        names = [p.name for p in self.service.get_available_purchases(as_of=MONDAY)]
        self.assertEqual(names, ['PO001', 'PO002'])

    def test_capacity_change_replans_line(self):
        self.service.plan_purchase_order(self.po1.id, self.line.id, MONDAY)
        self.service.plan_purchase_order(self.po2.id, self.line.id, MONDAY)

        summary = self.service.update_line_capacity(self.line.id, 50)

        self.assertEqual(summary['old_capacity'], 100)
        self.assertEqual(summary['capacity'], 50)
        self.assertEqual(summary['failed'], [])
        self.assertEqual([row['name'] for row in summary['replanned']], ['PO001', 'PO002'])

        self.assertEqual(sum(e.planned_quantity for e in self.entries_for(self.po1)), 250)
        self.assertEqual(sum(e.planned_quantity for e in self.entries_for(self.po2)), 120)

        per_day = defaultdict(float)
        for entry in self.service.get_line_plan(self.line.id):
            per_day[entry.planned_date] += entry.planned_quantity
        self.assertTrue(all(total <= 50 for total in per_day.values()))

    def test_invalid_capacity(self):
        for capacity in (0, -5, 'ten', True, 12.5):
            with self.assertRaises(ValidationError):
                self.service.update_line_capacity(self.line.id, capacity)
        with self.assertRaises(ValidationError):
            self.service.create_production_line('Dyeing', 12.5)

    def test_whole_float_capacity_is_stored_as_int(self):
        summary = self.service.update_line_capacity(self.line.id, 80.0)

        self.assertEqual(summary['capacity'], 80)
        self.assertIsInstance(self.session.get(ProductionLine, self.line.id).capacity, int)

    def test_inactive_line_keeps_its_plans(self):
        self.service.plan_purchase_order(self.po1.id, self.line.id, MONDAY)
        self.line.is_active = False
        self.session.commit()

        with self.assertRaises(ValidationError):
            self.service.update_line_capacity(self.line.id, 200)

        self.assertEqual(sum(e.planned_quantity for e in self.entries_for(self.po1)), 250)
        self.assertEqual(self.session.get(Purchase, self.po1.id).state, 'planned')
        self.assertEqual(self.session.get(ProductionLine, self.line.id).capacity, 100)

    def test_inactive_line_without_plans_takes_new_capacity(self):
        self.other_line.is_active = False
        self.session.commit()

        summary = self.service.update_line_capacity(self.other_line.id, 80)

        self.assertEqual(summary['capacity'], 80)
        self.assertEqual(summary['replanned'], [])

    def test_stale_session_cannot_plan_twice(self):
        other_session = sessionmaker(bind=self.engine)()
        try:
            other_service = ProductionPlanningService(other_session)
            self.assertEqual(other_service.get_purchase(self.po1.id).state, 'purchase')

            self.service.plan_purchase_order(self.po1.id, self.line.id, MONDAY)

            with self.assertRaises(ValidationError):
                other_service.plan_purchase_order(self.po1.id, self.other_line.id, MONDAY)
        finally:
            other_session.close()
        self.assertEqual({e.line_id for e in self.entries_for(self.po1)}, {self.line.id})

    def test_planning_holds_the_purchase_lock(self):
        seen = []

        def record(*args, **kwargs):
            seen.append(purchase_lock(self.po1.id).locked())
            return calculate_planning(*args, **kwargs)

        with patch('textile_planning.services.planning_service.calculate_planning', side_effect=record):
            result = self.service.plan_purchase_order(self.po1.id, self.line.id, MONDAY)

        self.assertTrue(result.success)
        self.assertEqual(seen, [True])
        self.assertFalse(purchase_lock(self.po1.id).locked())

    def test_hold_takes_the_locks_of_planned_lines(self):
        self.service.plan_purchase_order(self.po1.id, self.line.id, MONDAY)
        seen = []
        delete_entries = ProductionPlanningService._delete_purchase_entries

        def record(service, purchase):
            seen.append((purchase_lock(self.po1.id).locked(), line_lock(self.line.id).locked()))
            return delete_entries(service, purchase)

        with patch.object(ProductionPlanningService, '_delete_purchase_entries', record):
            self.service.hold_purchase(self.po1.id, as_of=MONDAY)

        self.assertEqual(seen, [(True, True)])
        self.assertEqual(self.entries_for(self.po1), [])
        self.assertFalse(line_lock(self.line.id).locked())

    def test_recalculate_unknown_line(self):
        with self.assertRaises(NotFoundError):
            self.service.recalculate_line(999)

    def test_create_production_line(self):
        line = self.service.create_production_line('  Dyeing  ', 300)

        self.assertEqual(line.name, 'Dyeing')
        self.assertEqual([l.name for l in self.service.get_production_lines()],
                         ['Dyeing', 'Knitting 1', 'Knitting 2'])

        with self.assertRaises(ValidationError) as context:
            self.service.create_production_line('', 0)
        self.assertIn('name', context.exception.details)
        self.assertIn('capacity', context.exception.details)

if __name__ == '__main__':
    unittest.main()
