"""Order lifecycle operations.

Every operation takes the acting user explicitly and returns new Order
values; inputs are never modified. Stage gates are advisory: advance_stage
records whatever transition it is asked for unless strict=True.
"""

import random
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields as dataclass_fields, replace
from datetime import datetime, timezone
from typing import Any

import structlog

from .audit import append_entry
from .errors import MissingCustomerError, PalletError, TransitionNotAllowedError
from .models import (
    COMPLETED,
    DEAD_OPPORTUNITY,
    ArtConfirmation,
    ArtStatus,
    AuditValue,
    CloseoutChecklist,
    CurrentUser,
    FulfillmentStatus,
    InvoiceStatus,
    LeadInfo,
    LineItem,
    Order,
    OrderStatus,
    PrepStatus,
    _utc_now,
)
from .stages import (
    BYPASSABLE_STAGES,
    gate_for,
    is_valid_status,
    parse_status,
    stage_number,
    status_label,
)

logger = structlog.get_logger(__name__)

LEAD_PREFIX = "LEAD"
DEFAULT_PREFIX = "TBD"

# Sub-record fields and the model each accepts as a plain dict
SUB_RECORDS: dict[str, type] = {
    "lead_info": LeadInfo,
    "prep_status": PrepStatus,
    "fulfillment": FulfillmentStatus,
    "invoice_status": InvoiceStatus,
    "closeout_checklist": CloseoutChecklist,
    "art_confirmation": ArtConfirmation,
}

# Fields that only dedicated operations may change
PROTECTED_FIELDS = frozenset(
    {
        "id",
        "status",
        "history",
        "version",
        "created_at",
        "updated_at",
        "is_archived",
        "archived_at",
        "closed_at",
        "closed_reason",
        "reopened_from",
    }
)

_ORDER_FIELDS = frozenset(f.name for f in dataclass_fields(Order))

# Editable fields that may be set to None
NULLABLE_FIELDS = frozenset({"lead_info"})

FIELD_LABELS = {
    "lead_info": "Lead info",
    "prep_status": "Prep status",
    "fulfillment": "Fulfillment",
    "invoice_status": "Invoice status",
    "closeout_checklist": "Closeout checklist",
    "art_confirmation": "Art confirmation",
    "art_status": "Art status",
    "line_items": "Line items",
    "due_date": "Due date",
    "rush_order": "Rush order",
    "notes": "Notes",
    "customer": "Customer",
    "customer_email": "Customer email",
    "customer_phone": "Customer phone",
    "project_name": "Project name",
    "order_number": "Order number",
}


@dataclass(frozen=True)
class TransitionCheck:
    valid: bool
    reason: str | None = None


@dataclass(frozen=True)
class DeadOpportunityResult:
    dead_order: Order
    new_lead: Order | None = None


def generate_order_number(
    prefix: str = DEFAULT_PREFIX,
    year: int | None = None,
    rng: random.Random | None = None,
) -> str:
    """Generate an order number of the form PREFIX-YYYY-NNNN."""
    if year is None:
        year = datetime.now(timezone.utc).year
    number = (rng or random).randint(1000, 9999)
    return f"{prefix}-{year}-{number}"


def _year_of(timestamp: str) -> int:
    return int(timestamp[:4])


def _coerce(name: str, value: Any) -> Any:
    """Turn dict payloads into the model type the Order field expects."""
    if name in SUB_RECORDS and isinstance(value, Mapping):
        return SUB_RECORDS[name].from_dict(dict(value))
    if name == "line_items":
        return _coerce_items(value)
    if name == "art_status" and isinstance(value, str):
        try:
            return ArtStatus(value)
        except ValueError:
            raise PalletError(f"Invalid art status: {value}") from None
    return value


def _coerce_items(items: Iterable[LineItem | Mapping[str, Any]]) -> tuple[LineItem, ...]:
    return tuple(
        LineItem.from_dict(dict(item)) if isinstance(item, Mapping) else item for item in items
    )


def create_order(
    fields: Mapping[str, Any],
    actor: CurrentUser,
    now: str | None = None,
    rng: random.Random | None = None,
) -> Order:
    """
    Build a new order with all sub-records defaulted.

    fields holds Order attribute names. status defaults to Lead, and a
    Lead order without lead_info gets a default one. An order number is
    generated when none is supplied. Fields given as None keep their
    defaults.

    Raises:
        MissingCustomerError: If customer is missing or blank.
        InvalidStatusError: If status is not a known stage.
        PalletError: If fields names a protected or unknown attribute.
    """
    data = dict(fields)
    customer = str(data.pop("customer", "") or "").strip()
    if not customer:
        raise MissingCustomerError()

    status = parse_status(data.pop("status", None) or OrderStatus.LEAD)
    order_number = data.pop("order_number", None)
    for name in data:
        if name not in _ORDER_FIELDS or name in PROTECTED_FIELDS:
            raise PalletError(f"Cannot set '{name}' when creating an order")

    now = now or _utc_now()
    attrs = {
        name: _coerce(name, value) for name, value in data.items() if value is not None
    }
    if status == OrderStatus.LEAD and attrs.get("lead_info") is None:
        attrs["lead_info"] = LeadInfo(contacted_at=now)
    if not order_number:
        prefix = LEAD_PREFIX if status == OrderStatus.LEAD else DEFAULT_PREFIX
        order_number = generate_order_number(prefix, year=_year_of(now), rng=rng)

    order = Order.create(
        customer=customer,
        order_number=order_number,
        status=status,
        now=now,
        version=0,
        **attrs,
    )
    order = append_entry(
        order, "Order created", None, AuditValue.status(status), actor, now=now
    )
    logger.info(
        "Order created",
        order_id=order.id,
        order_number=order.order_number,
        status=status.value,
        actor=actor.id,
    )
    return order


def check_transition(
    order: Order, target: OrderStatus | str, bypass: bool = False
) -> TransitionCheck:
    """
    Report whether moving order to target follows the workflow policy.

    Reopening from Closed and closing from any stage are always allowed.
    Otherwise only the next stage is allowed, and only once the gate for
    the current stage is met.

    Raises:
        InvalidStatusError: If target is not a known stage.
    """
    target = parse_status(target)
    if not is_valid_status(order.status):
        return TransitionCheck(False, f"Invalid current status: {status_label(order.status)}")
    if order.status == target:
        return TransitionCheck(True, "No change")
    if order.status == OrderStatus.CLOSED or target == OrderStatus.CLOSED:
        return TransitionCheck(True)
    if stage_number(target) != stage_number(order.status) + 1:
        return TransitionCheck(False, "Orders can only advance one stage at a time")
    gate = gate_for(order, bypass=bypass)
    if not gate.met:
        return TransitionCheck(False, gate.reason)
    return TransitionCheck(True, gate.reason)


def advance_stage(
    order: Order,
    new_status: OrderStatus | str,
    actor: CurrentUser,
    notes: str | None = None,
    bypass: bool = False,
    strict: bool = False,
    now: str | None = None,
) -> Order:
    """
    Move order to new_status.

    A 'Status changed' entry is appended only when the status actually
    changes. Backward and skipping moves are recorded like any other
    unless strict=True, in which case check_transition must pass.
    Moving a Closed order to an open stage clears closed_at and
    closed_reason; reopened_from is kept.

    Raises:
        InvalidStatusError: If new_status is not a known stage.
        TransitionNotAllowedError: In strict mode, if the move is refused.
    """
    target = parse_status(new_status)
    if strict:
        check = check_transition(order, target, bypass=bypass)
        if not check.valid:
            raise TransitionNotAllowedError(
                status_label(order.status), target.value, check.reason or "not allowed"
            )

    now = now or _utc_now()
    if order.status == target:
        return replace(order, updated_at=now)

    if bypass and order.status in BYPASSABLE_STAGES and not gate_for(order).met:
        bypassed = f"{status_label(order.status)} bypassed"
        notes = f"{bypassed}: {notes}" if notes else bypassed

    moved = replace(order, status=target)
    if order.status == OrderStatus.CLOSED:
        # Leaving Closed reopens the order, as reopen_order does
        moved = replace(moved, closed_at=None, closed_reason=None)

    updated = append_entry(
        moved,
        "Status changed",
        AuditValue.status(order.status),
        AuditValue.status(target),
        actor,
        notes=notes,
        now=now,
    )
    logger.info(
        "Order stage changed",
        order_id=order.id,
        order_number=order.order_number,
        previous=status_label(order.status),
        status=target.value,
        actor=actor.id,
    )
    return updated


def update_line_items(
    order: Order,
    line_items: Iterable[LineItem | Mapping[str, Any]],
    actor: CurrentUser,
    notes: str | None = None,
    now: str | None = None,
) -> Order:
    """
    Replace the order's line items as given.

    Prices are stored as supplied; call pricing.compute_price (or
    line_items.reprice) per item beforehand.
    """
    items = _coerce_items(line_items)
    updated = append_entry(
        replace(order, line_items=items),
        "Line items updated",
        order.line_items,
        items,
        actor,
        notes=notes,
        now=now,
    )
    logger.info(
        "Line items updated",
        order_id=order.id,
        order_number=order.order_number,
        count=len(items),
        actor=actor.id,
    )
    return updated


def update_order(
    order: Order,
    actor: CurrentUser,
    action: str | None = None,
    notes: str | None = None,
    now: str | None = None,
    **changes: Any,
) -> Order:
    """
    Replace simple fields or whole sub-records of an order.

    Sub-records may be given as model instances or dicts. One history
    entry is appended per call, holding before/after values of the
    changed fields. Returns order unchanged when nothing differs.

    Raises:
        MissingCustomerError: If customer is changed to a blank value.
        PalletError: If a change names a protected or unknown field, or
            sets a required field to None.
    """
    for name, value in changes.items():
        if name not in _ORDER_FIELDS:
            raise PalletError(f"Unknown order field: {name}")
        if name in PROTECTED_FIELDS:
            raise PalletError(f"Field '{name}' cannot be changed with update_order")
        if name == "customer":
            continue
        if value is None and name not in NULLABLE_FIELDS:
            raise PalletError(f"Field '{name}' cannot be cleared")

    if "customer" in changes:
        customer = str(changes["customer"] or "").strip()
        if not customer:
            raise MissingCustomerError()
        changes["customer"] = customer

    coerced = {name: _coerce(name, value) for name, value in changes.items()}
    changed = {name: v for name, v in coerced.items() if getattr(order, name) != v}
    if not changed:
        return order

    if len(changed) == 1:
        (name, value), = changed.items()
        previous: Any = getattr(order, name)
        new: Any = value
        action = action or f"{FIELD_LABELS.get(name, name)} updated"
    else:
        previous = {name: AuditValue.of(getattr(order, name)).value for name in changed}
        new = {name: AuditValue.of(value).value for name, value in changed.items()}
        action = action or "Order updated"

    updated = append_entry(
        replace(order, **changed), action, previous, new, actor, notes=notes, now=now
    )
    logger.info(
        "Order updated",
        order_id=order.id,
        order_number=order.order_number,
        fields=sorted(changed),
        actor=actor.id,
    )
    return updated


def move_to_dead_opportunity(
    order: Order,
    actor: CurrentUser,
    also_create_lead: bool = False,
    notes: str | None = None,
    now: str | None = None,
    rng: random.Random | None = None,
) -> DeadOpportunityResult:
    """
    Close order as a dead opportunity.

    The prior status is kept in reopened_from. With also_create_lead, a
    fresh Lead is built for the same customer whose lead notes point back
    at the dead order's number.
    """
    now = now or _utc_now()
    prior = order.status
    dead = append_entry(
        replace(
            order,
            status=OrderStatus.CLOSED,
            closed_at=now,
            closed_reason=DEAD_OPPORTUNITY,
            reopened_from=prior,
        ),
        "Moved to dead opportunity",
        AuditValue.status(prior),
        AuditValue.status(OrderStatus.CLOSED),
        actor,
        notes=notes,
        now=now,
    )
    logger.info(
        "Order moved to dead opportunity",
        order_id=order.id,
        order_number=order.order_number,
        previous=status_label(prior),
        actor=actor.id,
    )

    new_lead = None
    if also_create_lead:
        new_lead = create_order(
            {
                "customer": order.customer,
                "customer_email": order.customer_email,
                "customer_phone": order.customer_phone,
                "project_name": order.project_name,
                "status": OrderStatus.LEAD,
                "order_number": generate_order_number(LEAD_PREFIX, year=_year_of(now), rng=rng),
                "lead_info": LeadInfo(
                    contacted_at=now,
                    contact_notes=f"Follow-up lead from dead opportunity {order.order_number}",
                ),
            },
            actor,
            now=now,
        )
    return DeadOpportunityResult(dead_order=dead, new_lead=new_lead)


def close_order(
    order: Order,
    actor: CurrentUser,
    reason: str = COMPLETED,
    notes: str | None = None,
    now: str | None = None,
) -> Order:
    """Close order with closure data filled in."""
    now = now or _utc_now()
    closed = append_entry(
        replace(order, status=OrderStatus.CLOSED, closed_at=now, closed_reason=reason),
        "Order closed",
        AuditValue.status(order.status),
        AuditValue.status(OrderStatus.CLOSED),
        actor,
        notes=notes or reason,
        now=now,
    )
    logger.info(
        "Order closed", order_id=order.id, order_number=order.order_number, reason=reason
    )
    return closed


def reopen_order(
    order: Order,
    target: OrderStatus | str,
    actor: CurrentUser,
    notes: str | None = None,
    now: str | None = None,
) -> Order:
    """
    Reopen a closed order at target.

    Raises:
        InvalidStatusError: If target is not a known stage.
        TransitionNotAllowedError: If order is not closed or target is Closed.
    """
    target = parse_status(target)
    if order.status != OrderStatus.CLOSED:
        raise TransitionNotAllowedError(
            status_label(order.status), target.value, "only closed orders can be reopened"
        )
    if target == OrderStatus.CLOSED:
        raise TransitionNotAllowedError(
            OrderStatus.CLOSED.value, target.value, "order is already closed"
        )
    reopened = append_entry(
        replace(order, status=target, closed_at=None, closed_reason=None),
        "Order reopened",
        AuditValue.status(OrderStatus.CLOSED),
        AuditValue.status(target),
        actor,
        notes=notes,
        now=now,
    )
    logger.info(
        "Order reopened",
        order_id=order.id,
        order_number=order.order_number,
        status=target.value,
        actor=actor.id,
    )
    return reopened


def archive_order(order: Order, actor: CurrentUser, now: str | None = None) -> Order:
    """Hide order from stage boards. Already archived orders are returned as-is."""
    if order.is_archived:
        return order
    now = now or _utc_now()
    return append_entry(
        replace(order, is_archived=True, archived_at=now),
        "Order archived",
        False,
        True,
        actor,
        now=now,
    )


def unarchive_order(order: Order, actor: CurrentUser, now: str | None = None) -> Order:
    if not order.is_archived:
        return order
    return append_entry(
        replace(order, is_archived=False, archived_at=None),
        "Order unarchived",
        True,
        False,
        actor,
        now=now,
    )
