"""Tests for stage definitions and gates."""

import pytest

from pallet.errors import InvalidStatusError
from pallet.models import (
    ArtStatus,
    CloseoutChecklist,
    DecorationType,
    FulfillmentMethod,
    FulfillmentStatus,
    InvoiceStatus,
    OrderStatus,
    PrepStatus,
)
from pallet.stages import (
    ORDER_STAGES,
    gate_for,
    is_valid_status,
    missing_prep_tasks,
    next_stage,
    parse_status,
    previous_stage,
    required_prep_tasks,
    stage_number,
)

from .conftest import make_item, make_order


class TestStageOrder:
    def test_twelve_stages_in_order(self):
        assert [s.value for s in ORDER_STAGES] == [
            "Lead",
            "Quote",
            "Approval",
            "Art Confirmation",
            "Inventory Order",
            "Production Prep",
            "Inventory Received",
            "Production",
            "Fulfillment",
            "Invoice",
            "Closeout",
            "Closed",
        ]

    def test_stage_numbers_are_zero_based(self):
        assert stage_number(OrderStatus.LEAD) == 0
        assert stage_number("Production") == 7
        assert stage_number("Closed") == 11
        assert stage_number("Shipped") is None

    def test_parse_status(self):
        assert parse_status("Art Confirmation") is OrderStatus.ART_CONFIRMATION
        assert parse_status(OrderStatus.QUOTE) is OrderStatus.QUOTE

    def test_parse_invalid_status_raises(self):
        with pytest.raises(InvalidStatusError, match="Invalid status: Shipped"):
            parse_status("Shipped")

    def test_is_valid_status(self):
        assert is_valid_status("Invoice")
        assert not is_valid_status("invoice")

    def test_neighbors(self):
        assert next_stage(OrderStatus.LEAD) is OrderStatus.QUOTE
        assert next_stage(OrderStatus.CLOSED) is None
        assert previous_stage(OrderStatus.QUOTE) is OrderStatus.LEAD
        assert previous_stage(OrderStatus.LEAD) is None
        assert next_stage("bogus") is None


class TestPrepRequirements:
    def test_requirements_follow_decoration_types(self, actor):
        order = make_order(
            actor,
            items=[
                make_item(decoration_type=DecorationType.DTF),
                make_item(decoration_type=DecorationType.EMBROIDERY),
            ],
        )
        required = required_prep_tasks(order)
        assert required.gang_sheet
        assert required.digitizing
        assert not required.screens

    def test_no_decoration_needs_no_prep(self, actor):
        order = make_order(actor, items=[make_item(decoration_type=DecorationType.OTHER)])
        assert not required_prep_tasks(order).any
        assert missing_prep_tasks(order) == []

    def test_missing_tasks(self, actor):
        order = make_order(
            actor,
            items=[make_item(), make_item(decoration_type=DecorationType.DTF)],
            prep_status=PrepStatus(gang_sheet_created=True),
        )
        assert missing_prep_tasks(order) == ["screens not burned"]


class TestGates:
    def test_lead_needs_contact(self, actor):
        order = make_order(actor, customer_email="")
        result = gate_for(order)
        assert not result.met
        assert "contact" in result.reason

        assert gate_for(make_order(actor, customer_email="", customer_phone="555-0100")).met

    def test_quote_needs_line_items(self, actor):
        assert not gate_for(make_order(actor, status=OrderStatus.QUOTE)).met
        assert gate_for(make_order(actor, status=OrderStatus.QUOTE, items=[make_item()])).met

    def test_approval_always_met(self, actor):
        assert gate_for(make_order(actor, status=OrderStatus.APPROVAL)).met

    def test_art_confirmation_needs_approval(self, actor):
        order = make_order(actor, status=OrderStatus.ART_CONFIRMATION, items=[make_item()])
        assert not gate_for(order).met

        approved = make_order(
            actor,
            status=OrderStatus.ART_CONFIRMATION,
            items=[make_item()],
            art_status=ArtStatus.APPROVED,
        )
        assert gate_for(approved).met

    def test_art_confirmation_bypass(self, actor):
        order = make_order(actor, status=OrderStatus.ART_CONFIRMATION, items=[make_item()])
        result = gate_for(order, bypass=True)
        assert result.met
        assert result.reason == "Art Confirmation bypassed"

    def test_bypass_does_not_apply_elsewhere(self, actor):
        order = make_order(actor, status=OrderStatus.QUOTE)
        assert not gate_for(order, bypass=True).met

    def test_inventory_order_needs_all_items_ordered(self, actor):
        order = make_order(
            actor,
            status=OrderStatus.INVENTORY_ORDER,
            items=[make_item(ordered=True), make_item()],
        )
        result = gate_for(order)
        assert not result.met
        assert result.reason == "1 of 2 items not ordered"

    def test_item_gates_fail_without_items(self, actor):
        order = make_order(actor, status=OrderStatus.INVENTORY_RECEIVED)
        assert gate_for(order).reason == "No line items"

    def test_production_prep(self, actor):
        order = make_order(actor, status=OrderStatus.PRODUCTION_PREP, items=[make_item()])
        result = gate_for(order)
        assert not result.met
        assert "screens not burned" in result.reason
        assert gate_for(order, bypass=True).met

    def test_production_needs_decorated_and_packed(self, actor):
        order = make_order(
            actor,
            status=OrderStatus.PRODUCTION,
            items=[make_item(decorated=True)],
        )
        assert gate_for(order).reason == "1 of 1 items not packed"

    def test_fulfillment(self, actor):
        order = make_order(actor, status=OrderStatus.FULFILLMENT, items=[make_item()])
        assert not gate_for(order).met

        shipped = make_order(
            actor,
            status=OrderStatus.FULFILLMENT,
            items=[make_item()],
            fulfillment=FulfillmentStatus(
                method=FulfillmentMethod.SHIPPED, shipping_label_printed=True
            ),
        )
        assert gate_for(shipped).met

    def test_invoice_needs_created_and_sent(self, actor):
        created = make_order(
            actor,
            status=OrderStatus.INVOICE,
            invoice_status=InvoiceStatus(invoice_created=True),
        )
        assert gate_for(created).reason == "Invoice not sent"

    def test_closeout_checklist(self, actor):
        partial = make_order(
            actor,
            status=OrderStatus.CLOSEOUT,
            closeout_checklist=CloseoutChecklist(files_saved=True),
        )
        assert not gate_for(partial).met

        done = make_order(
            actor,
            status=OrderStatus.CLOSEOUT,
            closeout_checklist=CloseoutChecklist(True, True, True),
        )
        assert gate_for(done).met

    def test_invalid_status_raises(self, actor):
        from dataclasses import replace

        order = replace(make_order(actor), status="Shipped")
        with pytest.raises(InvalidStatusError):
            gate_for(order)
