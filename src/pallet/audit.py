"""Append-only order history."""

from dataclasses import replace
from typing import Any

import structlog

from .models import AuditKind, AuditValue, CurrentUser, Order, StatusChangeLog, _utc_now

logger = structlog.get_logger(__name__)

_SCALAR_KINDS = (AuditKind.STATUS, AuditKind.TEXT, AuditKind.NUMBER, AuditKind.BOOL)


def make_entry(
    action: str,
    previous_value: Any,
    new_value: Any,
    actor: CurrentUser,
    notes: str | None = None,
    now: str | None = None,
) -> StatusChangeLog:
    """Build a history entry attributed to actor."""
    return StatusChangeLog(
        timestamp=now or _utc_now(),
        user_id=actor.id,
        user_name=actor.display_name,
        action=action,
        previous_value=AuditValue.of(previous_value),
        new_value=AuditValue.of(new_value),
        notes=notes,
    )


def append_entry(
    order: Order,
    action: str,
    previous_value: Any,
    new_value: Any,
    actor: CurrentUser,
    notes: str | None = None,
    now: str | None = None,
) -> Order:
    """
    Return a copy of order with one more history entry.

    The new order's updated_at is set to the entry timestamp and its
    version is incremented. Existing entries are carried over as the
    same objects, in the same positions.
    """
    entry = make_entry(action, previous_value, new_value, actor, notes=notes, now=now)
    logger.debug(
        "History entry appended",
        order_id=order.id,
        order_number=order.order_number,
        action=action,
        actor=actor.id,
    )
    return replace(
        order,
        history=order.history + (entry,),
        updated_at=entry.timestamp,
        version=order.version + 1,
    )


def entries_for(order: Order, action: str) -> list[StatusChangeLog]:
    """History entries with the given action, oldest first."""
    return [entry for entry in order.history if entry.action == action]


def format_entry(entry: StatusChangeLog) -> str:
    """Format a history entry for display."""
    line = f"{entry.timestamp}  {entry.action} by {entry.user_name or entry.user_id}"
    if entry.previous_value.kind in _SCALAR_KINDS or entry.new_value.kind in _SCALAR_KINDS:
        line += f": {_short(entry.previous_value)} -> {_short(entry.new_value)}"
    if entry.notes:
        line += f" ({entry.notes})"
    return line


def _short(value: AuditValue) -> str:
    if value.value is None:
        return "-"
    if value.kind == AuditKind.SNAPSHOT:
        return "{...}"
    return str(value.value)
