"""
Unit tests for the inventory planning aggregator.
"""
import unittest
from datetime import date
from types import SimpleNamespace

from textile_planning.core.inventory_planning import (
    NO_SALES_RATIO, active_hold_ids, analyze, classify_urgency,
    rank_shortfalls, recommendation_for
)
from textile_planning.exceptions import ForecastError

AS_OF = date(2025, 6, 15)

def item(name, category, on_hand, product_id=None):
    return SimpleNamespace(product_id=product_id, product_name=name,
                           product_category=category, quantity_on_hand=on_hand)

def sale(order_date, name, quantity):
    return SimpleNamespace(date_order=order_date, lines=[
        SimpleNamespace(product_id=None, product_name=name, qty_delivered=quantity)
    ])

def purchase(purchase_id, name, pending, category='Tees'):
    return SimpleNamespace(
        id=purchase_id, name=f"PO{purchase_id:03d}", partner_name='Mill Co',
        expected_date=date(2025, 7, 1), state='purchase', pending_qty=pending,
        lines=[SimpleNamespace(product_id=None, product_name=name, product_category=category)]
    )

def hold(purchase_id, held_until):
    return SimpleNamespace(purchase_id=purchase_id, held_until=held_until)

class TestAnalyze(unittest.TestCase):
    """Test cases for analyze."""

    def setUp(self):
        self.inventory = [
            item('Tee A', 'Tees', 10),
            item('Tee B', 'Tees', 5),
            item('Jacket', 'Outerwear', 100),
        ]
        self.sales = [
            sale(date(2024, 7, 10), 'Tee A', 20),
            sale(date(2024, 9, 5), 'Tee A', 30),
            sale(date(2024, 8, 1), 'Tee B', 15),
            sale(date(2024, 8, 1), 'Jacket', 60),
        ]

    def test_ranks_products_by_shortfall(self):
        result = analyze(self.inventory, self.sales, [], [], 3, AS_OF)

        self.assertEqual([(p.product_name, p.shortfall) for p in result.products], [
            ('Tee A', 40), ('Tee B', 10), ('Jacket', 0)
        ])

    def test_category_totals_are_sums_of_members(self):
        result = analyze(self.inventory, self.sales, [], [], 3, AS_OF)
        tees = result.categories[0]

        self.assertEqual(tees.category, 'Tees')
        self.assertEqual(tees.forecast, 65)
        self.assertEqual(tees.on_hand, 15)
        self.assertEqual(tees.shortfall, 50)
        self.assertEqual([c.category for c in result.categories], ['Tees', 'Outerwear'])
        self.assertEqual(result.total_shortfall, 50)

    def test_category_shortfall_is_not_netted(self):
        # Tee B overstock does not offset the Tee A shortfall
        inventory = [item('Tee A', 'Tees', 10), item('Tee B', 'Tees', 500)]
        result = analyze(inventory, self.sales, [], [], 3, AS_OF)

        self.assertEqual(result.categories[0].shortfall, 40)

    def test_incoming_supply_reduces_shortfall(self):
        purchases = [purchase(1, 'Tee A', 30)]
        result = analyze(self.inventory, self.sales, purchases, [], 3, AS_OF)

        tee_a = next(p for p in result.products if p.product_name == 'Tee A')
        self.assertEqual(tee_a.incoming, 30)
        self.assertEqual(tee_a.shortfall, 10)

    def test_shortfall_never_negative(self):
        purchases = [purchase(1, 'Tee A', 1000)]
        result = analyze(self.inventory, self.sales, purchases, [], 3, AS_OF)

        self.assertTrue(all(p.shortfall >= 0 for p in result.products))
        self.assertTrue(all(c.shortfall >= 0 for c in result.categories))

    def test_held_purchases_are_not_incoming(self):
        purchases = [purchase(1, 'Tee A', 30)]
        result = analyze(self.inventory, self.sales, purchases, [hold(1, date(2025, 9, 15))], 3, AS_OF)

        tee_a = next(p for p in result.products if p.product_name == 'Tee A')
        self.assertEqual(tee_a.incoming, 0)
        self.assertEqual(tee_a.shortfall, 40)
        self.assertEqual(result.categories[0].suppliers, [])

    def test_expired_hold_is_ignored(self):
        self.assertEqual(active_hold_ids([hold(1, date(2025, 6, 14)), hold(2, AS_OF)], AS_OF), {2})

    def test_supplier_info(self):
        purchases = [purchase(1, 'Tee A', 30), purchase(2, 'Jacket', 5, category='Outerwear')]
        result = analyze(self.inventory, self.sales, purchases, [], 3, AS_OF)

        tees = next(c for c in result.categories if c.category == 'Tees')
        self.assertEqual(tees.suppliers, [{
            'supplier': 'Mill Co', 'po_number': 'PO001',
            'expected_date': '2025-07-01', 'status': 'purchase'
        }])

    def test_excluded_categories(self):
        result = analyze(self.inventory, self.sales, [], [], 3, AS_OF, excluded_categories=['outerwear'])
        self.assertEqual([c.category for c in result.categories], ['Tees'])

    def test_current_month_window(self):
        result = analyze(self.inventory, self.sales, [], [], 3, AS_OF, window='current_month')

        tee_a = next(p for p in result.products if p.product_name == 'Tee A')
        self.assertEqual(tee_a.forecast, 20)

    def test_unknown_window(self):
        with self.assertRaises(ForecastError):
            analyze(self.inventory, self.sales, [], [], 3, AS_OF, window='last_quarter')

    def test_to_dict(self):
        data = analyze(self.inventory, self.sales, [], [], 3, AS_OF).to_dict()

        self.assertEqual(data['as_of'], '2025-06-15')
        self.assertEqual(data['categories'][0]['products'][0]['product_name'], 'Tee A')

class TestUrgency(unittest.TestCase):
    """Test cases for urgency bands."""

    def test_bands(self):
        # Monthly forecast of 30
        self.assertEqual(classify_urgency(10, 90, 3)[0], 'critical')
        self.assertEqual(classify_urgency(25, 90, 3)[0], 'high')
        self.assertEqual(classify_urgency(45, 90, 3)[0], 'medium')
        self.assertEqual(classify_urgency(60, 90, 3)[0], 'low')

    def test_no_forecast(self):
        self.assertEqual(classify_urgency(0, 0, 3), ('low', NO_SALES_RATIO))

    def test_custom_thresholds(self):
        thresholds = {'critical_ratio': 1.0, 'high_ratio': 2.0, 'medium_ratio': 3.0}
        self.assertEqual(classify_urgency(25, 90, 3, thresholds)[0], 'critical')

    def test_recommendations(self):
        self.assertEqual(
            recommendation_for('critical', 1 / 3),
            "URGENT: Only 10 days of stock remaining. Contact suppliers immediately."
        )
        self.assertIn('Expedite production', recommendation_for('high', 0.8))
        self.assertIn('within 2 weeks', recommendation_for('medium', 1.5))
        self.assertEqual(recommendation_for('low', 2.6), "Stock levels adequate for 3 months.")

    def test_rank_ties_by_name(self):
        rows = [
            SimpleNamespace(product_name='b', shortfall=5),
            SimpleNamespace(product_name='A', shortfall=5),
            SimpleNamespace(product_name='c', shortfall=9),
        ]
        self.assertEqual([r.product_name for r in rank_shortfalls(rows)], ['c', 'A', 'b'])

if __name__ == '__main__':
    unittest.main()
