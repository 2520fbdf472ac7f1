"""
Line totals, subtotal/total and money formatting.
"""
import math

import pytest

from invoice_studio.models import LineItem
from invoice_studio.totals import (
    coerce_price,
    coerce_quantity,
    document_total,
    format_money,
    line_total,
    subtotal,
    total,
)

from conftest import fixed_defaults


def _item(i, qty, price):
    return LineItem(id=str(i), description=f"row {i}", quantity=qty, unit_price=price)


class TestArithmetic:
    def test_line_total_is_quantity_times_price(self):
        assert line_total(_item(1, 3, 2.5)) == 7.5

    def test_empty_items_sum_to_zero(self):
        assert subtotal([]) == 0
        assert total([]) == 0

    def test_subtotal_sums_line_totals(self):
        items = [_item(1, 2, 10), _item(2, 1, 0.5), _item(3, 4, 1.25)]
        assert subtotal(items) == pytest.approx(2 * 10 + 0.5 + 4 * 1.25)

    def test_negative_values_flow_through(self):
        items = [_item(1, -2, 10), _item(2, 1, 5)]
        assert subtotal(items) == -15

    def test_total_matches_subtotal(self):
        items = [_item(1, 7, 3.3), _item(2, 2, 19.99)]
        assert total(items) == subtotal(items)

    def test_default_document_totals(self):
        doc = fixed_defaults()
        assert subtotal(doc.items) == 2497
        assert document_total(doc) == 2497
        assert format_money(document_total(doc), doc.currency_symbol) == "$2497.00"


class TestFormatting:
    @pytest.mark.parametrize(
        "amount,symbol,expected",
        [
            (0, "$", "$0.00"),
            (1500, "€", "€1500.00"),
            (12.346, "£", "£12.35"),
            (1234567.5, "$", "$1234567.50"),
            (-5, "$", "$-5.00"),
            (3, "USD ", "USD 3.00"),
            (-0.0, "$", "$0.00"),
            (-0.004, "$", "$-0.00"),
            (float("inf"), "$", "$Infinity"),
            (float("-inf"), "$", "$-Infinity"),
        ],
    )
    def test_two_decimals_symbol_prepended(self, amount, symbol, expected):
        assert format_money(amount, symbol) == expected


class TestCoercion:
    @pytest.mark.parametrize(
        "raw,expected",
        [("7", 7), (" 12 ", 12), ("3.9", 3), ("-4", -4), ("abc", 0), ("", 0), (None, 0), (2.7, 2), (5, 5)],
    )
    def test_quantity(self, raw, expected):
        assert coerce_quantity(raw) == expected

    def test_quantity_nan_is_zero(self):
        assert coerce_quantity(math.nan) == 0

    @pytest.mark.parametrize(
        "raw,expected",
        [("12.5", 12.5), ("997", 997.0), (".5", 0.5), ("-3.25", -3.25), ("1e2", 100.0), ("12abc", 12.0), ("x", 0.0), ("", 0.0), (None, 0.0), (4, 4.0)],
    )
    def test_price(self, raw, expected):
        assert coerce_price(raw) == expected

    def test_price_nan_is_zero(self):
        assert coerce_price(float("nan")) == 0.0

    @pytest.mark.parametrize("raw", ["1e999", "-1e999", "inf", "Infinity", float("inf"), float("-inf"), 10**400])
    def test_price_infinite_is_zero(self, raw):
        assert coerce_price(raw) == 0.0

    def test_quantity_too_large_for_arithmetic_is_zero(self):
        assert coerce_quantity("9" * 400) == 0


class TestZeroRows:
    def test_zero_quantity_negative_price_formats_as_zero(self):
        item = _item(1, 0, -5.0)
        assert format_money(line_total(item), "$") == "$0.00"
        assert format_money(subtotal([item]), "$") == "$0.00"
