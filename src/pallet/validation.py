"""Consistency checks over an order collection.

Only two problems are errors: a status outside the known stages and an
order ID used more than once. Everything else is a warning, since the
workflow lets orders move on before their paperwork catches up.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .models import ArtStatus, DecorationType, Order, OrderStatus
from .stages import decoration_types, stage_number, status_label

ART_CONFIRMATION_STAGE = stage_number(OrderStatus.ART_CONFIRMATION)
PRODUCTION_STAGE = stage_number(OrderStatus.PRODUCTION)
FULFILLMENT_STAGE = stage_number(OrderStatus.FULFILLMENT)
INVOICE_STAGE = stage_number(OrderStatus.INVOICE)

# Decoration type -> (prep flag, warning)
PREP_CHECKS = (
    (DecorationType.SCREEN_PRINT, "screens_burned", "Has screen print but screens not burned"),
    (DecorationType.EMBROIDERY, "artwork_digitized", "Has embroidery but not digitized"),
    (DecorationType.DTF, "gang_sheet_created", "Has DTF but gang sheet not created"),
)


@dataclass(frozen=True)
class OrderValidationResult:
    order_id: str
    order_number: str
    valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: tuple[str, ...]
    warnings: tuple[str, ...]
    order_results: tuple[OrderValidationResult, ...]
    duplicate_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "duplicate_count": self.duplicate_count,
            "order_results": [r.to_dict() for r in self.order_results],
        }


def _art_started(order: Order) -> bool:
    return (
        order.art_status != ArtStatus.NOT_STARTED
        or order.art_confirmation.overall_status != ArtStatus.NOT_STARTED
    )


def check_order(order: Order) -> tuple[list[str], list[str]]:
    """Return (errors, warnings) for a single order."""
    errors: list[str] = []
    warnings: list[str] = []

    stage = stage_number(order.status)
    if stage is None:
        errors.append(f"Invalid status: {status_label(order.status)}")
        return errors, warnings

    if order.status == OrderStatus.LEAD and order.lead_info is None:
        warnings.append("Lead has no lead info")

    # A dead opportunity never went through production, so skip those checks
    if not order.is_dead_opportunity:
        if stage > 1 and not order.line_items:
            warnings.append("Past Quote but has no line items")
        if stage >= ART_CONFIRMATION_STAGE and not _art_started(order):
            warnings.append("At/past Art Confirmation but art status is Not Started")
        if stage >= PRODUCTION_STAGE:
            present = decoration_types(order)
            for decoration, flag, message in PREP_CHECKS:
                if decoration.value in present and getattr(order.prep_status, flag) is not True:
                    warnings.append(message)
        if stage >= FULFILLMENT_STAGE and order.fulfillment.method is None:
            warnings.append("At/past Fulfillment but no fulfillment method set")
        if stage >= INVOICE_STAGE and not order.invoice_status.invoice_created:
            warnings.append("At/past Invoice but invoice not created")

    if order.status == OrderStatus.CLOSED:
        if not order.closed_at:
            warnings.append("Closed but no closed date")
        if not order.closed_reason:
            warnings.append("Closed but no reason")

    return errors, warnings


def validate_order(order: Order) -> OrderValidationResult:
    errors, warnings = check_order(order)
    return OrderValidationResult(
        order_id=order.id,
        order_number=order.order_number,
        valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )


def validate_orders(orders: Iterable[Order]) -> ValidationResult:
    """
    Check every order and the collection as a whole.

    Collection-level errors and warnings are prefixed with the order
    number they concern. Duplicate IDs are reported once for the
    collection, as count minus distinct count, and as an error on each
    order sharing an ID. A shared order number is only a warning, given
    once per number and on each order using it. This function never
    raises for bad data.
    """
    orders = list(orders)
    id_counts = Counter(order.id for order in orders)
    duplicate_count = len(orders) - len(id_counts)
    duplicated = sorted(order_id for order_id, n in id_counts.items() if n > 1)
    number_counts = Counter(order.order_number for order in orders if order.order_number)

    errors: list[str] = []
    warnings: list[str] = []
    results = []
    for order in orders:
        order_errors, order_warnings = check_order(order)
        prefix = f"[{order.order_number}]"
        errors.extend(f"{prefix} {e}" for e in order_errors)
        warnings.extend(f"{prefix} {w}" for w in order_warnings)
        if id_counts[order.id] > 1:
            order_errors.append(f"Duplicate order id: {order.id}")
        if number_counts[order.order_number] > 1:
            order_warnings.append(f"Duplicate order number: {order.order_number}")
        results.append(
            OrderValidationResult(
                order_id=order.id,
                order_number=order.order_number,
                valid=not order_errors,
                errors=tuple(order_errors),
                warnings=tuple(order_warnings),
            )
        )

    if duplicate_count:
        errors.append(
            f"{duplicate_count} duplicate order id(s): {', '.join(duplicated)}"
        )
    for number, count in sorted(number_counts.items()):
        if count > 1:
            warnings.append(f"[{number}] Order number used by {count} orders")

    return ValidationResult(
        valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
        order_results=tuple(results),
        duplicate_count=duplicate_count,
    )


def format_report(result: ValidationResult, verbose: bool = False) -> str:
    """Format a validation result for terminal display."""
    lines = []
    total = len(result.order_results)
    clean = sum(1 for r in result.order_results if r.valid and not r.warnings)
    status = "PASS" if result.valid else "FAIL"
    lines.append(f"Validation {status}: {total} order(s), {clean} clean")
    lines.append(f"  Errors: {len(result.errors)}  Warnings: {len(result.warnings)}")

    if result.errors:
        lines.append("")
        lines.append("ERRORS:")
        lines.extend(f"  {e}" for e in result.errors)
    if result.warnings:
        lines.append("")
        lines.append("WARNINGS:")
        lines.extend(f"  {w}" for w in result.warnings)
    if verbose:
        lines.append("")
        for r in result.order_results:
            mark = "ok" if r.valid and not r.warnings else ("!!" if not r.valid else "~")
            lines.append(f"  [{mark}] {r.order_number} ({r.order_id[:8]})")
    return "\n".join(lines)
