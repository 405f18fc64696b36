"""Tests for OrderCollection."""

from dataclasses import replace

import pytest

from pallet.collection import OrderCollection
from pallet.errors import OrderNotFoundError
from pallet.models import OrderStatus
from pallet.workflow import advance_stage, archive_order

from .conftest import make_order


@pytest.fixture
def orders(actor):
    return (
        make_order(actor, order_number="A-1"),
        make_order(actor, order_number="A-2", status=OrderStatus.QUOTE),
        make_order(actor, order_number="A-3", status=OrderStatus.QUOTE, customer="Beta LLC"),
    )


class TestLookup:
    def test_get_by_id(self, orders):
        collection = OrderCollection(orders)
        assert collection.get(orders[1].id) is orders[1]

    def test_get_missing_raises(self, orders):
        with pytest.raises(OrderNotFoundError, match="Order not found: nope"):
            OrderCollection(orders).get("nope")

    def test_find_by_prefix_and_number(self, orders):
        collection = OrderCollection(orders)
        assert collection.find(orders[2].id[:8]) is orders[2]
        assert collection.find("A-2") is orders[1]

    def test_find_ambiguous_prefix(self, orders):
        a = replace(orders[0], id="abc-1")
        b = replace(orders[1], id="abc-2")
        with pytest.raises(OrderNotFoundError, match="ambiguous"):
            OrderCollection((a, b)).find("abc")

    def test_len_and_iter(self, orders):
        collection = OrderCollection(orders)
        assert len(collection) == 3
        assert list(collection) == list(orders)


class TestMutation:
    def test_add_returns_new_collection(self, actor, orders):
        empty = OrderCollection()
        collection = empty.add(*orders)
        assert len(empty) == 0
        assert len(collection) == 3

    def test_replace_order(self, actor, orders):
        collection = OrderCollection(orders)
        advanced = advance_stage(orders[0], OrderStatus.QUOTE, actor)
        updated = collection.replace_order(advanced)

        assert updated.get(advanced.id) is advanced
        assert collection.get(advanced.id) is orders[0]
        # Untouched orders are shared
        assert updated.orders[1] is orders[1]

    def test_replace_missing_raises(self, actor, orders):
        with pytest.raises(OrderNotFoundError):
            OrderCollection(orders[:1]).replace_order(orders[2])

    def test_upsert(self, actor, orders):
        collection = OrderCollection(orders[:2]).upsert(orders[2])
        assert len(collection) == 3
        again = collection.upsert(replace(orders[2], notes="Call back"))
        assert len(again) == 3
        assert again.get(orders[2].id).notes == "Call back"

    def test_select(self, orders):
        collection = OrderCollection(orders).select(orders[1].id)
        assert collection.selected is orders[1]
        assert collection.select(None).selected is None
        with pytest.raises(OrderNotFoundError):
            collection.select("nope")

    def test_delete_orders(self, actor, orders):
        collection = OrderCollection(orders).select(orders[0].id)
        remaining = collection.delete_orders([orders[0].id, "unknown"], actor)

        assert [o.id for o in remaining] == [orders[1].id, orders[2].id]
        assert remaining.selected_id is None
        assert len(collection) == 3

    def test_delete_keeps_other_selection(self, actor, orders):
        collection = OrderCollection(orders).select(orders[2].id)
        remaining = collection.delete_orders([orders[0].id], actor)
        assert remaining.selected is orders[2]


class TestViews:
    def test_board_excludes_archived(self, actor, orders):
        archived = archive_order(orders[1], actor)
        collection = OrderCollection((orders[0], archived, orders[2]))

        assert collection.board(OrderStatus.QUOTE) == [orders[2]]
        assert collection.board("Lead") == [orders[0]]
        assert collection.active() == [orders[0], orders[2]]
        assert collection.archived() == [archived]

    def test_counts_by_stage(self, orders):
        counts = OrderCollection(orders).counts_by_stage()
        assert list(counts) == [s.value for s in OrderStatus]
        assert counts["Lead"] == 1
        assert counts["Quote"] == 2
        assert counts["Closed"] == 0

    def test_counts_skip_unknown_status(self, orders):
        odd = replace(orders[0], status="Shipped")
        counts = OrderCollection((odd,)).counts_by_stage()
        assert sum(counts.values()) == 0

    def test_by_customer(self, orders):
        collection = OrderCollection(orders)
        assert len(collection.by_customer(" acme co ")) == 2
        assert collection.by_customer("Beta LLC") == [orders[2]]
