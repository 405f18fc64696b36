"""Building line items and tracking their physical progress."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace

from .models import (
    DecorationType,
    DtfSize,
    LineItem,
    StitchCountTier,
    _generate_id,
    _utc_now,
)
from .pricing import compute_price, is_plus_size

UNTITLED_ITEM = "Untitled Item"

# (flag, timestamp field) pairs in production order
PROGRESS_FLAGS = (
    ("ordered", "ordered_at"),
    ("received", "received_at"),
    ("decorated", "decorated_at"),
    ("packed", "packed_at"),
)


@dataclass(frozen=True)
class SkuConfig:
    """One garment style with its decoration settings."""

    item_number: str = ""
    name: str = ""
    decoration_type: DecorationType = DecorationType.SCREEN_PRINT
    decoration_placements: int = 1
    decoration_description: str = ""
    screen_print_colors: int = 1
    stitch_count_tier: StitchCountTier = StitchCountTier.UNDER_8K
    dtf_size: DtfSize = DtfSize.STANDARD
    cost: float = 0.0


@dataclass(frozen=True)
class ColorRow:
    """Quantities per size for one garment color."""

    color: str
    sizes: Mapping[str, int] = field(default_factory=dict)


def reprice(item: LineItem) -> LineItem:
    """Return item with price recomputed from its attributes."""
    return replace(item, price=compute_price(item))


def build_line_items(sku: SkuConfig, rows: Iterable[ColorRow]) -> tuple[LineItem, ...]:
    """
    Expand a SKU into one priced line item per color and size.

    Rows without a color and sizes with a zero quantity are skipped.
    Plus-size pricing is applied per item from its size.
    """
    items = []
    for row in rows:
        color = row.color.strip()
        if not color:
            continue
        for size, qty in row.sizes.items():
            if qty <= 0:
                continue
            item = LineItem(
                id=_generate_id(),
                item_number=sku.item_number,
                name=sku.name.strip() or UNTITLED_ITEM,
                color=color,
                size=size,
                qty=qty,
                decoration_type=sku.decoration_type,
                decoration_placements=sku.decoration_placements,
                decoration_description=sku.decoration_description,
                screen_print_colors=sku.screen_print_colors,
                stitch_count_tier=sku.stitch_count_tier,
                dtf_size=sku.dtf_size,
                is_plus_size=is_plus_size(size),
                cost=sku.cost,
            )
            items.append(reprice(item))
    return tuple(items)


def remove_line_item(items: Iterable[LineItem], item_id: str) -> tuple[LineItem, ...]:
    return tuple(item for item in items if item.id != item_id)


def _set_flag(item: LineItem, flag: str, value: bool, now: str) -> LineItem:
    stamp_field = f"{flag}_at"
    if getattr(item, flag) == value:
        return item
    return replace(item, **{flag: value, stamp_field: now if value else None})


def _mark_all(
    items: Iterable[LineItem], flags: tuple[str, ...], now: str | None
) -> tuple[LineItem, ...]:
    now = now or _utc_now()
    result = []
    for item in items:
        for flag in flags:
            item = _set_flag(item, flag, True, now)
        result.append(item)
    return tuple(result)


def mark_all_ordered(items: Iterable[LineItem], now: str | None = None) -> tuple[LineItem, ...]:
    return _mark_all(items, ("ordered",), now)


def mark_all_received(items: Iterable[LineItem], now: str | None = None) -> tuple[LineItem, ...]:
    return _mark_all(items, ("received",), now)


def mark_all_production_complete(
    items: Iterable[LineItem], now: str | None = None
) -> tuple[LineItem, ...]:
    """Mark every item decorated and packed."""
    return _mark_all(items, ("decorated", "packed"), now)


def _toggle(
    items: Iterable[LineItem], item_id: str, flag: str, now: str | None
) -> tuple[LineItem, ...]:
    now = now or _utc_now()
    result = []
    for item in items:
        # Nothing can be packed before it is decorated
        blocked = flag == "packed" and not item.decorated and not item.packed
        if item.id == item_id and not blocked:
            item = _set_flag(item, flag, not getattr(item, flag), now)
        result.append(item)
    return tuple(result)


def toggle_ordered(
    items: Iterable[LineItem], item_id: str, now: str | None = None
) -> tuple[LineItem, ...]:
    return _toggle(items, item_id, "ordered", now)


def toggle_received(
    items: Iterable[LineItem], item_id: str, now: str | None = None
) -> tuple[LineItem, ...]:
    return _toggle(items, item_id, "received", now)


def toggle_decorated(
    items: Iterable[LineItem], item_id: str, now: str | None = None
) -> tuple[LineItem, ...]:
    return _toggle(items, item_id, "decorated", now)


def toggle_packed(
    items: Iterable[LineItem], item_id: str, now: str | None = None
) -> tuple[LineItem, ...]:
    """Toggle packed; an item that is not yet decorated cannot be packed."""
    return _toggle(items, item_id, "packed", now)


def progress_counts(items: Iterable[LineItem]) -> dict[str, int]:
    """Number of items with each progress flag set."""
    items = list(items)
    return {flag: sum(1 for item in items if getattr(item, flag)) for flag, _ in PROGRESS_FLAGS}
