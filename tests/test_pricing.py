"""Tests for line item pricing."""

import pytest

from pallet.models import DecorationType, DtfSize, LineItem, StitchCountTier
from pallet.pricing import (
    compute_price,
    is_plus_size,
    line_total,
    order_total,
    price_breakdown,
)

from .conftest import make_item, make_order


class TestComputePrice:
    def test_screen_print_placements_and_colors(self):
        price = compute_price(
            {
                "decoration_type": DecorationType.SCREEN_PRINT,
                "cost": 4.50,
                "decoration_placements": 2,
                "screen_print_colors": 3,
                "is_plus_size": False,
            }
        )
        assert price == pytest.approx(16.00)

    def test_embroidery_under_8k_has_no_surcharge(self):
        price = compute_price(
            {
                "decoration_type": DecorationType.EMBROIDERY,
                "cost": 12.00,
                "stitch_count_tier": StitchCountTier.UNDER_8K,
            }
        )
        assert price == pytest.approx(24.00)

    def test_dtf_large(self):
        price = compute_price(
            {"decoration_type": DecorationType.DTF, "cost": 6.00, "dtf_size": DtfSize.LARGE}
        )
        assert price == pytest.approx(20.00)

    def test_dtf_standard(self):
        price = compute_price({"decoration_type": "DTF", "cost": 6.00})
        assert price == pytest.approx(17.00)

    @pytest.mark.parametrize(
        "tier,expected",
        [("<8k", 20.0), ("8k-12k", 30.0), ("12k+", 40.0)],
    )
    def test_embroidery_stitch_tiers(self, tier, expected):
        price = compute_price(
            {"decoration_type": "Embroidery", "cost": 10.0, "stitch_count_tier": tier}
        )
        assert price == pytest.approx(expected)

    def test_screen_print_plus_size_surcharge(self):
        attrs = {
            "decoration_type": "ScreenPrint",
            "cost": 5.0,
            "decoration_placements": 1,
            "screen_print_colors": 1,
        }
        regular = compute_price(attrs)
        plus = compute_price({**attrs, "is_plus_size": True})
        assert plus - regular == pytest.approx(2.0)

    def test_plus_size_ignored_for_other_decorations(self):
        price = compute_price({"decoration_type": "DTF", "cost": 5.0, "is_plus_size": True})
        assert price == pytest.approx(15.0)

    def test_other_decoration_is_plain_markup(self):
        assert compute_price({"decoration_type": "Other", "cost": 7.25}) == pytest.approx(14.5)

    def test_missing_fields_use_defaults(self):
        assert compute_price({}) == 0.0
        # ScreenPrint defaults to one placement and one color
        assert compute_price({"decoration_type": "ScreenPrint"}) == pytest.approx(3.0)

    def test_none_values_use_defaults(self):
        price = compute_price(
            {"decoration_type": "ScreenPrint", "cost": None, "decoration_placements": None}
        )
        assert price == pytest.approx(3.0)

    def test_accepts_line_item(self):
        item = LineItem.create(
            decoration_type=DecorationType.SCREEN_PRINT,
            cost=4.50,
            decoration_placements=2,
            screen_print_colors=3,
        )
        assert compute_price(item) == pytest.approx(16.00)

    def test_deterministic(self):
        attrs = {"decoration_type": "Embroidery", "cost": 3.3, "stitch_count_tier": "12k+"}
        assert compute_price(attrs) == compute_price(dict(attrs))


class TestPriceBreakdown:
    @pytest.mark.parametrize(
        "attrs",
        [
            {"decoration_type": "ScreenPrint", "cost": 4.5, "decoration_placements": 2,
             "screen_print_colors": 3, "is_plus_size": True},
            {"decoration_type": "Embroidery", "cost": 12.0, "stitch_count_tier": "8k-12k"},
            {"decoration_type": "DTF", "cost": 6.0, "dtf_size": "Large"},
            {"decoration_type": "Other", "cost": 1.0},
            {},
        ],
    )
    def test_total_matches_compute_price(self, attrs):
        assert price_breakdown(attrs).total == compute_price(attrs)

    def test_screen_print_fee_labels(self):
        breakdown = price_breakdown(
            {
                "decoration_type": "ScreenPrint",
                "cost": 4.5,
                "decoration_placements": 2,
                "screen_print_colors": 3,
                "is_plus_size": True,
            }
        )
        assert breakdown.base == pytest.approx(9.0)
        assert [(f.label, f.amount) for f in breakdown.fees] == [
            ("2 Placement(s)", 4.0),
            ("3 Color(s)", 3.0),
            ("2XL+ Surcharge", 2.0),
        ]

    def test_zero_counts_produce_no_fees(self):
        breakdown = price_breakdown(
            {"decoration_type": "ScreenPrint", "decoration_placements": 0,
             "screen_print_colors": 0}
        )
        assert breakdown.fees == ()

    def test_dtf_and_embroidery_labels(self):
        dtf = price_breakdown({"decoration_type": "DTF", "dtf_size": "Large"})
        assert [f.label for f in dtf.fees] == ["Large Transfer"]
        emb = price_breakdown({"decoration_type": "Embroidery", "stitch_count_tier": "12k+"})
        assert [f.label for f in emb.fees] == ["12k+ Stitches"]

    def test_to_dict(self):
        data = price_breakdown({"decoration_type": "DTF", "cost": 6.0}).to_dict()
        assert data == {
            "base": 12.0,
            "fees": [{"label": "Standard Transfer", "amount": 5.0}],
            "total": 17.0,
        }


class TestTotals:
    def test_is_plus_size(self):
        assert is_plus_size("2XL")
        assert is_plus_size(" 3xl ")
        assert not is_plus_size("XL")
        assert not is_plus_size("OS")

    def test_line_and_order_totals(self, actor):
        a = make_item(price=10.0, qty=3)
        b = make_item(price=2.5, qty=4)
        order = make_order(actor, items=[a, b])
        assert line_total(a) == pytest.approx(30.0)
        assert order_total(order) == pytest.approx(40.0)

    def test_empty_order_total(self, actor):
        assert order_total(make_order(actor)) == 0
