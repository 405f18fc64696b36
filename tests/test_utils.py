"""Tests for display and parsing helpers."""

import pytest

from pallet.errors import InvalidSizeSpecError
from pallet.models import OrderStatus
from pallet.pricing import price_breakdown
from pallet.utils import format_breakdown, format_money, format_order, parse_sizes

from .conftest import make_item, make_order


class TestParseSizes:
    def test_basic(self):
        assert parse_sizes("S=2, m=3,2xl=1") == {"S": 2, "M": 3, "2XL": 1}

    def test_repeated_sizes_add_up(self):
        assert parse_sizes("L=1,L=4") == {"L": 5}

    @pytest.mark.parametrize("spec", ["", "S", "S=two", "S=-1", ",,"])
    def test_invalid(self, spec):
        with pytest.raises(InvalidSizeSpecError):
            parse_sizes(spec)


class TestFormatting:
    def test_format_money(self):
        assert format_money(1234) == "$1,234.00"
        assert format_money(0.5) == "$0.50"

    def test_format_order(self, actor):
        order = make_order(actor, order_number="A-1", status=OrderStatus.QUOTE, rush_order=True)
        line = format_order(order)
        assert line == f"{order.id[:8]}  A-1  Acme Co (1:Quote) [RUSH]"

    def test_format_order_verbose(self, actor):
        order = make_order(actor, order_number="A-1", items=[make_item(qty=2, price=10.0)])
        text = format_order(order, verbose=True)
        assert "Contact: buyer@acme.test" in text
        assert "Items: 1  Total: $20.00" in text
        assert "2 x Tee Black/M ScreenPrint @ $10.00" in text
        assert "Version: 1  History: 1 entries" in text

    def test_format_breakdown(self):
        text = format_breakdown(price_breakdown({"decoration_type": "Embroidery", "cost": 10,
                                                 "stitch_count_tier": "8k-12k"}))
        assert text.splitlines() == [
            "Base (cost x 2): $20.00",
            "8k-12k Stitches: $10.00",
            "Total: $30.00",
        ]
