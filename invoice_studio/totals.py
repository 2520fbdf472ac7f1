# invoice_studio/totals.py
from __future__ import annotations

import math
import re
from typing import Any, Iterable

from .models import InvoiceData, LineItem

# Leading numeric prefixes, the way a number input's value gets read
INT_PREFIX_RE = re.compile(r"^\s*[-+]?\d+")
FLOAT_PREFIX_RE = re.compile(r"^\s*[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def line_total(item: LineItem) -> float:
    return item.quantity * item.unit_price


def subtotal(items: Iterable[LineItem]) -> float:
    return sum((line_total(item) for item in items), 0.0)


def total(items: Iterable[LineItem]) -> float:
    # No tax, discount or fee lines are modelled.
    return subtotal(items)


def document_total(doc: InvoiceData) -> float:
    return total(doc.items)


def format_money(amount: float, currency_symbol: str) -> str:
    """Symbol prepended verbatim, always two decimals, no grouping."""
    if math.isnan(amount):
        return f"{currency_symbol}NaN"
    if math.isinf(amount):
        return f"{currency_symbol}{'-' if amount < 0 else ''}Infinity"
    if amount == 0:
        # -0.0 prints as "0.00"
        amount = 0.0
    return f"{currency_symbol}{amount:.2f}"


def coerce_quantity(value: Any) -> int:
    """Parse a quantity the forgiving way: anything unparseable becomes 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return 0
        return int(value)
    if value is None:
        return 0

    m = INT_PREFIX_RE.match(str(value))
    if not m:
        return 0
    parsed = int(m.group(0))
    try:
        float(parsed)
    except OverflowError:
        # too large to multiply with a price
        return 0
    return parsed


def coerce_price(value: Any) -> float:
    """Parse a unit price; unparseable, NaN and infinite values become 0."""
    if isinstance(value, bool):
        return float(value)
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        try:
            parsed = float(value)
        except OverflowError:
            return 0.0
    else:
        m = FLOAT_PREFIX_RE.match(str(value))
        if not m:
            return 0.0
        try:
            parsed = float(m.group(0))
        except ValueError:
            return 0.0
    return parsed if math.isfinite(parsed) else 0.0
