"""Utility functions for pallet."""

import re

from .errors import InvalidSizeSpecError
from .models import Order
from .pricing import PriceBreakdown, order_total
from .stages import stage_number, status_label


def parse_sizes(spec: str) -> dict[str, int]:
    """
    Parse a size/quantity spec into a mapping.

    Format: "S=2,M=5,2XL=1". Sizes are upper-cased; repeated sizes add up.

    Raises:
        InvalidSizeSpecError: If the spec is malformed or a quantity is negative.
    """
    sizes: dict[str, int] = {}
    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        match = re.match(r"^([A-Za-z0-9]+)\s*=\s*(-?\d+)$", part)
        if not match:
            raise InvalidSizeSpecError(spec, f"expected 'SIZE=QTY', got '{part}'")
        size = match.group(1).upper()
        qty = int(match.group(2))
        if qty < 0:
            raise InvalidSizeSpecError(spec, f"negative quantity for {size}")
        sizes[size] = sizes.get(size, 0) + qty
    if not sizes:
        raise InvalidSizeSpecError(spec, "no sizes given")
    return sizes


def format_money(amount: float) -> str:
    return f"${amount:,.2f}"


def truncate_id(order_id: str) -> str:
    """Truncate an order ID for display."""
    return order_id[:8]


def format_order(order: Order, verbose: bool = False) -> str:
    """Format an order for display."""
    number = stage_number(order.status)
    stage = status_label(order.status)
    if number is not None:
        stage = f"{number}:{stage}"
    flags = []
    if order.rush_order:
        flags.append("RUSH")
    if order.is_archived:
        flags.append("archived")
    if order.closed_reason:
        flags.append(order.closed_reason)
    flag_str = f" [{', '.join(flags)}]" if flags else ""

    result = f"{truncate_id(order.id)}  {order.order_number}  {order.customer} ({stage}){flag_str}"

    if verbose:
        if order.project_name:
            result += f"\n         Project: {order.project_name}"
        contact = " / ".join(c for c in (order.customer_email, order.customer_phone) if c)
        if contact:
            result += f"\n         Contact: {contact}"
        if order.due_date:
            result += f"\n         Due: {order.due_date}"
        result += f"\n         Art: {status_label(order.art_status)}"
        total = format_money(order_total(order))
        result += f"\n         Items: {len(order.line_items)}  Total: {total}"
        for item in order.line_items:
            result += (
                f"\n           - {item.qty} x {item.name} {item.color}/{item.size}"
                f" {status_label(item.decoration_type)} @ {format_money(item.price)}"
            )
        result += f"\n         Version: {order.version}  History: {len(order.history)} entries"
    return result


def format_breakdown(breakdown: PriceBreakdown) -> str:
    lines = [f"Base (cost x 2): {format_money(breakdown.base)}"]
    for fee in breakdown.fees:
        lines.append(f"{fee.label}: {format_money(fee.amount)}")
    lines.append(f"Total: {format_money(breakdown.total)}")
    return "\n".join(lines)
