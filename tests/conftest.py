"""Pytest fixtures for pallet tests."""

import tempfile
from pathlib import Path

import pytest

from pallet.line_items import mark_all_ordered, mark_all_production_complete, mark_all_received
from pallet.models import (
    ArtStatus,
    CurrentUser,
    DecorationType,
    LineItem,
    OrderStatus,
    PrepStatus,
    Role,
)
from pallet.order_store import OrderStore
from pallet.workflow import create_order

NOW = "2025-03-01T12:00:00Z"


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def actor():
    return CurrentUser(id="u-1", display_name="Dana", role=Role.ADMIN)


@pytest.fixture
def store(temp_dir):
    """An initialized, empty order store."""
    order_store = OrderStore(temp_dir / "data")
    order_store.init()
    return order_store


def make_item(**attrs) -> LineItem:
    """A screen printed tee at $5 cost unless overridden."""
    defaults = {
        "name": "Tee",
        "color": "Black",
        "size": "M",
        "qty": 10,
        "decoration_type": DecorationType.SCREEN_PRINT,
        "cost": 5.0,
        "price": 13.0,
    }
    defaults.update(attrs)
    return LineItem.create(**defaults)


def make_order(actor, status=OrderStatus.LEAD, items=(), **fields):
    """Create an order through the workflow so it carries a creation entry."""
    data = {
        "customer": "Acme Co",
        "customer_email": "buyer@acme.test",
        "status": status,
        "line_items": list(items),
    }
    data.update(fields)
    return create_order(data, actor, now=NOW)


def ready_for_fulfillment(actor, **fields):
    """A Production order whose items and prep are all done."""
    items = mark_all_production_complete(
        mark_all_received(mark_all_ordered([make_item()], now=NOW), now=NOW), now=NOW
    )
    return make_order(
        actor,
        status=OrderStatus.PRODUCTION,
        items=items,
        art_status=ArtStatus.APPROVED,
        prep_status=PrepStatus(screens_burned=True),
        **fields,
    )
