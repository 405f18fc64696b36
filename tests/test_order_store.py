"""Tests for OrderStore."""

import json

import pytest

from pallet.errors import (
    InvalidSchemaVersionError,
    OrderNotFoundError,
    StoreExistsError,
    StoreNotFoundError,
)
from pallet.models import OrderStatus
from pallet.order_store import ORDERS_FILE, OrderStore
from pallet.workflow import advance_stage

from .conftest import make_item, make_order


class TestOrderStore:
    """Tests for OrderStore class."""

    def test_init_creates_store(self, temp_dir):
        store = OrderStore(temp_dir)
        collection = store.init()

        assert store.exists()
        assert len(collection) == 0
        data = json.loads((temp_dir / ORDERS_FILE).read_text())
        assert data == {"schema_version": 1, "orders": []}

    def test_init_without_force_raises(self, store):
        with pytest.raises(StoreExistsError):
            store.init()

    def test_init_force_clears_orders(self, store, actor):
        store.put(make_order(actor))
        store.init(force=True)
        assert len(store.load()) == 0

    def test_load_not_found_raises(self, temp_dir):
        with pytest.raises(StoreNotFoundError, match="pallet init"):
            OrderStore(temp_dir).load()

    def test_unsupported_schema_version(self, temp_dir):
        (temp_dir / ORDERS_FILE).write_text(json.dumps({"schema_version": 99, "orders": []}))
        with pytest.raises(InvalidSchemaVersionError):
            OrderStore(temp_dir).load()

    def test_put_and_get(self, store, actor):
        order = make_order(actor, items=[make_item()], order_number="A-1")
        store.put(order)

        assert store.get(order.id) == order
        assert store.get(order.id[:8]) == order
        assert store.get("A-1") == order

    def test_put_replaces_by_id(self, store, actor):
        order = make_order(actor)
        store.put(order)
        advanced = advance_stage(order, OrderStatus.QUOTE, actor)
        store.put(advanced)

        orders = store.list_orders()
        assert len(orders) == 1
        assert orders[0].status is OrderStatus.QUOTE
        assert len(orders[0].history) == 2

    def test_put_several(self, store, actor):
        store.put(make_order(actor), make_order(actor))
        assert len(store.load()) == 2

    def test_get_missing_raises(self, store):
        with pytest.raises(OrderNotFoundError):
            store.get("nope")

    def test_list_orders_hides_archived(self, store, actor):
        from dataclasses import replace

        visible = make_order(actor)
        hidden = replace(make_order(actor), is_archived=True)
        store.put(visible, hidden)

        assert [o.id for o in store.list_orders()] == [visible.id]
        assert len(store.list_orders(include_archived=True)) == 2

    def test_delete(self, store, actor):
        a, b = make_order(actor), make_order(actor)
        store.put(a, b)

        removed = store.delete([a.id, "unknown"], actor)

        assert [o.id for o in removed] == [a.id]
        assert [o.id for o in store.load()] == [b.id]

    def test_unknown_status_survives_round_trip(self, store, actor):
        order = make_order(actor)
        store.put(order)
        data = json.loads(store.path.read_text())
        data["orders"][0]["status"] = "Shipped"
        store.path.write_text(json.dumps(data))

        assert store.load().get(order.id).status == "Shipped"

    def test_no_temp_files_left(self, store, actor):
        store.put(make_order(actor))
        leftovers = [p.name for p in store.data_dir.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_data_dir_from_environment(self, temp_dir, monkeypatch):
        monkeypatch.setenv("PALLET_DATA_DIR", str(temp_dir / "env-data"))
        store = OrderStore()
        assert store.path == temp_dir / "env-data" / ORDERS_FILE
