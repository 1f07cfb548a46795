"""
Unit tests for the product matching strategies.
"""
import unittest
from types import SimpleNamespace

from textile_planning.core.matching import (
    CleanedNameMatcher, ProductKey, SubstringMatcher, clean_product_name,
    line_matches_product, make_product_key
)

class TestCleanProductName(unittest.TestCase):

    def test_strips_codes_and_spaces(self):
        self.assertEqual(clean_product_name('[TS-001]  Cotton   Tee '), 'Cotton Tee')
        self.assertEqual(clean_product_name('Polo [BLK] Shirt'), 'Polo Shirt')

    def test_empty(self):
        self.assertEqual(clean_product_name(None), '')
        self.assertEqual(clean_product_name(''), '')

class TestMatchers(unittest.TestCase):
    """Test cases for the matcher implementations."""

    def test_substring_is_case_insensitive(self):
        matcher = SubstringMatcher()
        self.assertTrue(matcher.matches('[TS-001] Cotton Tee White', 'cotton tee'))
        self.assertFalse(matcher.matches('Denim Jacket', 'Cotton Tee'))

    def test_empty_names_never_match(self):
        matcher = SubstringMatcher()
        self.assertFalse(matcher.matches('', 'Tee'))
        self.assertFalse(matcher.matches('Tee', None))

    def test_cleaned_matcher_ignores_codes(self):
        matcher = CleanedNameMatcher()
        self.assertTrue(matcher.matches('[A1] Cotton  Tee', '[B2] cotton tee'))

    def test_best_match_prefers_exact_name(self):
        products = [
            SimpleNamespace(name='Cotton Tee Long Sleeve', product_category='Tees'),
            SimpleNamespace(name='[CT] Cotton Tee', product_category='Basics'),
        ]

        match = CleanedNameMatcher().best_match('Cotton Tee', products)

        self.assertEqual(match.product_category, 'Basics')

    def test_best_match_case_insensitive_then_containment(self):
        products = [
            SimpleNamespace(name='Denim Jacket'),
            SimpleNamespace(name='COTTON TEE'),
        ]
        matcher = CleanedNameMatcher()

        self.assertEqual(matcher.best_match('cotton tee', products).name, 'COTTON TEE')
        self.assertEqual(matcher.best_match('Denim Jacket Blue', products).name, 'Denim Jacket')
        self.assertIsNone(matcher.best_match('Linen Trousers', products))
        self.assertIsNone(matcher.best_match('', products))

    def test_default_best_match_returns_first_hit(self):
        candidates = [SimpleNamespace(name='Polo Shirt'), SimpleNamespace(name='Polo Shirt XL')]
        self.assertIs(SubstringMatcher().best_match('polo', candidates), candidates[0])

class TestLineMatchesProduct(unittest.TestCase):

    def test_product_ids_take_precedence(self):
        line = SimpleNamespace(product_id=7, product_name='Cotton Tee')

        self.assertTrue(line_matches_product(line, ProductKey(7, 'Something else')))
        self.assertFalse(line_matches_product(line, ProductKey(8, 'Cotton Tee')))

    def test_falls_back_to_names(self):
        line = SimpleNamespace(product_id=None, product_name='[CT] Cotton Tee')
        self.assertTrue(line_matches_product(line, ProductKey(7, 'cotton tee')))

    def test_make_product_key(self):
        self.assertEqual(make_product_key('Tee'), ProductKey(None, 'Tee'))
        row = SimpleNamespace(product_id=3, product_name='Tee')
        self.assertEqual(make_product_key(row), ProductKey(3, 'Tee'))
        key = ProductKey(1, 'Polo')
        self.assertIs(make_product_key(key), key)

if __name__ == '__main__':
    unittest.main()
