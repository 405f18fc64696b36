"""Workflow stage definitions and the gate to leave each stage."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .errors import InvalidStatusError
from .models import ArtStatus, DecorationType, Order, OrderStatus

ORDER_STAGES: tuple[OrderStatus, ...] = tuple(OrderStatus)
STAGE_NUMBER: dict[str, int] = {stage.value: i for i, stage in enumerate(ORDER_STAGES)}

# Stages whose gate can be waived when advancing
BYPASSABLE_STAGES = (OrderStatus.ART_CONFIRMATION, OrderStatus.PRODUCTION_PREP)


def status_label(status: OrderStatus | str | None) -> str:
    """Display string for a status, known or not."""
    if status is None:
        return ""
    return status.value if isinstance(status, Enum) else str(status)


def stage_number(status: OrderStatus | str) -> int | None:
    """Return the 0-based stage number, or None for an unknown status."""
    return STAGE_NUMBER.get(status_label(status))


def is_valid_status(status: OrderStatus | str) -> bool:
    return stage_number(status) is not None


def parse_status(value: OrderStatus | str) -> OrderStatus:
    """
    Convert a status string to OrderStatus.

    Raises:
        InvalidStatusError: If value is not one of the stages.
    """
    number = stage_number(value)
    if number is None:
        raise InvalidStatusError(status_label(value))
    return ORDER_STAGES[number]


def next_stage(status: OrderStatus | str) -> OrderStatus | None:
    number = stage_number(status)
    if number is None or number + 1 >= len(ORDER_STAGES):
        return None
    return ORDER_STAGES[number + 1]


def previous_stage(status: OrderStatus | str) -> OrderStatus | None:
    number = stage_number(status)
    if not number:
        return None
    return ORDER_STAGES[number - 1]


# Prep requirements


@dataclass(frozen=True)
class PrepRequirements:
    """Which prep tasks the order's decoration types call for."""

    gang_sheet: bool = False
    digitizing: bool = False
    screens: bool = False

    @property
    def any(self) -> bool:
        return self.gang_sheet or self.digitizing or self.screens


def decoration_types(order: Order) -> set[str]:
    return {status_label(item.decoration_type) for item in order.line_items}


def required_prep_tasks(order: Order) -> PrepRequirements:
    present = decoration_types(order)
    return PrepRequirements(
        gang_sheet=DecorationType.DTF.value in present,
        digitizing=DecorationType.EMBROIDERY.value in present,
        screens=DecorationType.SCREEN_PRINT.value in present,
    )


def missing_prep_tasks(order: Order) -> list[str]:
    """Labels of required prep tasks not yet marked done."""
    required = required_prep_tasks(order)
    prep = order.prep_status
    missing = []
    if required.gang_sheet and prep.gang_sheet_created is not True:
        missing.append("gang sheet not created")
    if required.digitizing and prep.artwork_digitized is not True:
        missing.append("artwork not digitized")
    if required.screens and prep.screens_burned is not True:
        missing.append("screens not burned")
    return missing


# Gates


@dataclass(frozen=True)
class GateResult:
    met: bool
    reason: str | None = None


MET = GateResult(True)


def _all_items(order: Order, flag: str, label: str) -> GateResult:
    if not order.line_items:
        return GateResult(False, "No line items")
    pending = [item for item in order.line_items if not getattr(item, flag)]
    if pending:
        return GateResult(False, f"{len(pending)} of {len(order.line_items)} items not {label}")
    return MET


def _lead_gate(order: Order) -> GateResult:
    if not order.customer.strip():
        return GateResult(False, "Customer name is missing")
    if not (order.customer_email.strip() or order.customer_phone.strip()):
        return GateResult(False, "No contact email or phone captured")
    return MET


def _quote_gate(order: Order) -> GateResult:
    if not order.line_items:
        return GateResult(False, "Add at least one line item before leaving Quote")
    return MET


def _approval_gate(order: Order) -> GateResult:
    # Customer approval is recorded by the advance itself
    return MET


def _art_gate(order: Order) -> GateResult:
    if (
        order.art_status == ArtStatus.APPROVED
        or order.art_confirmation.overall_status == ArtStatus.APPROVED
    ):
        return MET
    return GateResult(False, "Art has not been approved")


def _inventory_order_gate(order: Order) -> GateResult:
    return _all_items(order, "ordered", "ordered")


def _prep_gate(order: Order) -> GateResult:
    missing = missing_prep_tasks(order)
    if missing:
        return GateResult(False, "Prep incomplete: " + ", ".join(missing))
    return MET


def _inventory_received_gate(order: Order) -> GateResult:
    return _all_items(order, "received", "received")


def _production_gate(order: Order) -> GateResult:
    result = _all_items(order, "decorated", "decorated")
    if not result.met:
        return result
    return _all_items(order, "packed", "packed")


def _fulfillment_gate(order: Order) -> GateResult:
    fulfillment = order.fulfillment
    if fulfillment.method is None:
        return GateResult(False, "No fulfillment method selected")
    if not (fulfillment.shipping_label_printed or fulfillment.customer_picked_up):
        return GateResult(False, "Shipping label not printed and order not picked up")
    return MET


def _invoice_gate(order: Order) -> GateResult:
    invoice = order.invoice_status
    if not invoice.invoice_created:
        return GateResult(False, "Invoice not created")
    if not invoice.invoice_sent:
        return GateResult(False, "Invoice not sent")
    return MET


def _closeout_gate(order: Order) -> GateResult:
    if not order.closeout_checklist.is_complete():
        return GateResult(False, "Closeout checklist incomplete")
    return MET


def _closed_gate(order: Order) -> GateResult:
    return MET


STAGE_GATES: dict[OrderStatus, Callable[[Order], GateResult]] = {
    OrderStatus.LEAD: _lead_gate,
    OrderStatus.QUOTE: _quote_gate,
    OrderStatus.APPROVAL: _approval_gate,
    OrderStatus.ART_CONFIRMATION: _art_gate,
    OrderStatus.INVENTORY_ORDER: _inventory_order_gate,
    OrderStatus.PRODUCTION_PREP: _prep_gate,
    OrderStatus.INVENTORY_RECEIVED: _inventory_received_gate,
    OrderStatus.PRODUCTION: _production_gate,
    OrderStatus.FULFILLMENT: _fulfillment_gate,
    OrderStatus.INVOICE: _invoice_gate,
    OrderStatus.CLOSEOUT: _closeout_gate,
    OrderStatus.CLOSED: _closed_gate,
}


def gate_for(order: Order, bypass: bool = False) -> GateResult:
    """
    Evaluate the gate for leaving the order's current stage.

    Gates are advisory. With bypass=True the Art Confirmation and
    Production Prep gates are treated as met.

    Raises:
        InvalidStatusError: If the order's status is not a known stage.
    """
    stage = parse_status(order.status)
    if bypass and stage in BYPASSABLE_STAGES:
        return GateResult(True, f"{stage.value} bypassed")
    return STAGE_GATES[stage](order)
