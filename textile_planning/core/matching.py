# textile_planning/core/matching.py
"""Strategies for joining sales and purchase lines to catalogue products.

ERP product names carry bracketed codes and inconsistent spacing, so lines
are matched heuristically. Callers depend only on ``ProductMatcher`` and can
swap in a stricter strategy.
"""
import re
from collections import namedtuple
from typing import Iterable, Optional

ProductKey = namedtuple('ProductKey', ['product_id', 'name'])

_BRACKET_CODE = re.compile(r'\[.*?\]')
_WHITESPACE = re.compile(r'\s+')

def clean_product_name(name: Optional[str]) -> str:
    """Drop bracketed codes such as ``[TS-001]`` and normalise whitespace."""
    if not name:
        return ''
    return _WHITESPACE.sub(' ', _BRACKET_CODE.sub('', name).strip())

def make_product_key(product) -> ProductKey:
    """Build a ProductKey from a name, a ProductKey or a row with product_id/product_name."""
    if isinstance(product, ProductKey):
        return product
    if isinstance(product, str):
        return ProductKey(None, product)
    return ProductKey(
        getattr(product, 'product_id', None),
        getattr(product, 'product_name', None) or getattr(product, 'name', None)
    )

class ProductMatcher:
    """Interface: decide whether a line refers to a product, or pick the best candidate."""

    def matches(self, line_name: Optional[str], product_name: Optional[str]) -> bool:
        raise NotImplementedError

    def best_match(self, name: Optional[str], candidates: Iterable, name_attr: str = 'name'):
        """Return the best matching candidate or None."""
        for candidate in candidates:
            if self.matches(getattr(candidate, name_attr, None), name):
                return candidate
        return None

class SubstringMatcher(ProductMatcher):
    """Case-insensitive containment of the product name in the line name."""

    def matches(self, line_name, product_name):
        if not line_name or not product_name:
            return False
        return product_name.lower() in line_name.lower()

class CleanedNameMatcher(ProductMatcher):
    """Compares names with bracket codes stripped, widening the match step by step."""

    def matches(self, line_name, product_name):
        cleaned_line = clean_product_name(line_name).lower()
        cleaned_product = clean_product_name(product_name).lower()
        if not cleaned_line or not cleaned_product:
            return False
        return cleaned_product in cleaned_line

    def best_match(self, name, candidates, name_attr='name'):
        if not name:
            return None

        candidates = list(candidates)
        cleaned = clean_product_name(name)
        lowered = cleaned.lower()

        def candidate_name(candidate):
            return getattr(candidate, name_attr, None) or ''

        for candidate in candidates:
            if clean_product_name(candidate_name(candidate)) == cleaned:
                return candidate

        for candidate in candidates:
            if clean_product_name(candidate_name(candidate)).lower() == lowered:
                return candidate

        for candidate in candidates:
            other = clean_product_name(candidate_name(candidate)).lower()
            if other and lowered and (lowered in other or other in lowered):
                return candidate

        # Last resort: raw names, codes included
        raw = name.lower()
        for candidate in candidates:
            other = candidate_name(candidate).lower()
            if other and (raw in other or other in raw):
                return candidate

        return None

default_matcher = SubstringMatcher()

def line_matches_product(line, product_key: ProductKey, matcher: Optional[ProductMatcher] = None) -> bool:
    """Exact product id when both sides carry one, otherwise the name strategy."""
    line_product_id = getattr(line, 'product_id', None)
    if product_key.product_id is not None and line_product_id is not None:
        return line_product_id == product_key.product_id

    return (matcher or default_matcher).matches(getattr(line, 'product_name', None), product_key.name)
