"""Tests for building line items and tracking progress."""

import pytest

from pallet.line_items import (
    ColorRow,
    SkuConfig,
    build_line_items,
    mark_all_ordered,
    mark_all_production_complete,
    mark_all_received,
    progress_counts,
    remove_line_item,
    reprice,
    toggle_decorated,
    toggle_ordered,
    toggle_packed,
)
from pallet.models import DecorationType

from .conftest import NOW, make_item


class TestBuildLineItems:
    def test_one_item_per_color_and_size(self):
        sku = SkuConfig(
            item_number="G500",
            name="Heavy Tee",
            decoration_type=DecorationType.SCREEN_PRINT,
            decoration_placements=2,
            screen_print_colors=3,
            cost=4.50,
        )
        items = build_line_items(
            sku,
            [
                ColorRow("Black", {"S": 2, "M": 0, "2XL": 1}),
                ColorRow("  ", {"L": 5}),
                ColorRow("Navy", {"L": 4}),
            ],
        )

        assert [(i.color, i.size, i.qty) for i in items] == [
            ("Black", "S", 2),
            ("Black", "2XL", 1),
            ("Navy", "L", 4),
        ]
        assert items[0].price == pytest.approx(16.00)
        assert items[1].is_plus_size
        assert items[1].price == pytest.approx(18.00)
        assert len({i.id for i in items}) == 3
        assert all(i.item_number == "G500" for i in items)

    def test_blank_name_gets_placeholder(self):
        items = build_line_items(SkuConfig(name=" "), [ColorRow("White", {"M": 1})])
        assert items[0].name == "Untitled Item"

    def test_reprice(self):
        item = make_item(cost=6.0, decoration_type=DecorationType.DTF, price=0.0)
        assert reprice(item).price == pytest.approx(17.0)

    def test_remove_line_item(self):
        a, b = make_item(), make_item()
        assert remove_line_item((a, b), a.id) == (b,)


class TestProgress:
    def test_mark_all_sets_timestamps(self):
        items = mark_all_ordered([make_item(), make_item()], now=NOW)
        assert all(i.ordered and i.ordered_at == NOW for i in items)
        assert not any(i.received for i in items)

    def test_mark_all_keeps_existing_timestamps(self):
        done = make_item(received=True, received_at="2025-01-01T00:00:00Z")
        items = mark_all_received([done, make_item()], now=NOW)
        assert items[0] is done
        assert items[1].received_at == NOW

    def test_production_complete(self):
        items = mark_all_production_complete([make_item()], now=NOW)
        assert items[0].decorated and items[0].packed
        assert items[0].packed_at == NOW

    def test_toggle_on_and_off(self):
        item = make_item()
        on = toggle_ordered([item], item.id, now=NOW)
        assert on[0].ordered and on[0].ordered_at == NOW
        off = toggle_ordered(on, item.id, now=NOW)
        assert not off[0].ordered and off[0].ordered_at is None

    def test_toggle_other_ids_untouched(self):
        a, b = make_item(), make_item()
        items = toggle_decorated([a, b], a.id, now=NOW)
        assert items[0].decorated
        assert items[1] is b

    def test_cannot_pack_before_decorated(self):
        item = make_item()
        assert toggle_packed([item], item.id, now=NOW)[0] is item

        decorated = toggle_decorated([item], item.id, now=NOW)
        packed = toggle_packed(decorated, item.id, now=NOW)
        assert packed[0].packed

    def test_progress_counts(self):
        items = (make_item(ordered=True), make_item(ordered=True, received=True), make_item())
        assert progress_counts(items) == {
            "ordered": 2,
            "received": 1,
            "decorated": 0,
            "packed": 0,
        }
