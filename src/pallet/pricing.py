"""Line item pricing rules.

Sale price is a 2x markup on wholesale cost plus a surcharge that depends
on how the garment is decorated:

- DTF: $8 for a Large transfer, $5 otherwise.
- ScreenPrint: $2 per placement, $1 per ink color, $2 extra for 2XL and up.
- Embroidery: $20 for 12k+ stitches, $10 for 8k-12k, nothing under 8k.
- Other decoration types carry no surcharge.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .models import DecorationType, DtfSize, LineItem, Order, StitchCountTier

MARKUP = 2

DTF_LARGE_FEE = 8.0
DTF_STANDARD_FEE = 5.0
SCREEN_PRINT_PLACEMENT_FEE = 2.0
SCREEN_PRINT_COLOR_FEE = 1.0
PLUS_SIZE_FEE = 2.0
STITCH_FEES = {
    StitchCountTier.OVER_12K: 20.0,
    StitchCountTier.FROM_8K_TO_12K: 10.0,
    StitchCountTier.UNDER_8K: 0.0,
}

PLUS_SIZES = frozenset({"2XL", "3XL", "4XL"})


@dataclass(frozen=True)
class Fee:
    label: str
    amount: float


@dataclass(frozen=True)
class PriceBreakdown:
    """Display form of a computed price."""

    base: float
    fees: tuple[Fee, ...]
    total: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "base": self.base,
            "fees": [{"label": f.label, "amount": f.amount} for f in self.fees],
            "total": self.total,
        }


@dataclass(frozen=True)
class _PriceInputs:
    cost: float
    decoration_type: str
    decoration_placements: int
    screen_print_colors: int
    is_plus_size: bool
    stitch_count_tier: str
    dtf_size: str


def _inputs(attrs: LineItem | Mapping[str, Any]) -> _PriceInputs:
    """Read pricing attributes, falling back to defaults for missing or None values."""
    if isinstance(attrs, Mapping):
        get = attrs.get
    else:
        def get(key: str, default: Any = None) -> Any:
            return getattr(attrs, key, default)

    def value(key: str, default: Any) -> Any:
        v = get(key, default)
        return default if v is None else v

    return _PriceInputs(
        cost=float(value("cost", 0)),
        decoration_type=value("decoration_type", DecorationType.OTHER),
        decoration_placements=int(value("decoration_placements", 1)),
        screen_print_colors=int(value("screen_print_colors", 1)),
        is_plus_size=bool(value("is_plus_size", False)),
        stitch_count_tier=value("stitch_count_tier", StitchCountTier.UNDER_8K),
        dtf_size=value("dtf_size", DtfSize.STANDARD),
    )


def _label(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _fees(inputs: _PriceInputs) -> list[Fee]:
    fees: list[Fee] = []
    if inputs.decoration_type == DecorationType.DTF:
        amount = DTF_LARGE_FEE if inputs.dtf_size == DtfSize.LARGE else DTF_STANDARD_FEE
        fees.append(Fee(f"{_label(inputs.dtf_size)} Transfer", amount))
    elif inputs.decoration_type == DecorationType.SCREEN_PRINT:
        placements = inputs.decoration_placements
        colors = inputs.screen_print_colors
        if placements > 0:
            fees.append(
                Fee(f"{placements} Placement(s)", SCREEN_PRINT_PLACEMENT_FEE * placements)
            )
        if colors > 0:
            fees.append(Fee(f"{colors} Color(s)", SCREEN_PRINT_COLOR_FEE * colors))
        if inputs.is_plus_size:
            fees.append(Fee("2XL+ Surcharge", PLUS_SIZE_FEE))
    elif inputs.decoration_type == DecorationType.EMBROIDERY:
        if inputs.stitch_count_tier == StitchCountTier.OVER_12K:
            fees.append(Fee("12k+ Stitches", STITCH_FEES[StitchCountTier.OVER_12K]))
        elif inputs.stitch_count_tier == StitchCountTier.FROM_8K_TO_12K:
            fees.append(Fee("8k-12k Stitches", STITCH_FEES[StitchCountTier.FROM_8K_TO_12K]))
    return fees


def compute_price(attrs: LineItem | Mapping[str, Any]) -> float:
    """
    Compute the unit sale price for a line item.

    Accepts a LineItem or a mapping of its attribute names. Missing
    attributes use the line item defaults, so this never fails on
    partial input.
    """
    return price_breakdown(attrs).total


def price_breakdown(attrs: LineItem | Mapping[str, Any]) -> PriceBreakdown:
    """Decompose the unit price into base and itemized fees."""
    inputs = _inputs(attrs)
    base = inputs.cost * MARKUP
    fees = tuple(_fees(inputs))
    total = base + sum(f.amount for f in fees)
    return PriceBreakdown(base=base, fees=fees, total=total)


def is_plus_size(size: str) -> bool:
    return size.strip().upper() in PLUS_SIZES


def line_total(item: LineItem) -> float:
    return item.price * item.qty


def order_total(order: Order) -> float:
    """Sum of price x qty over all line items."""
    return sum(line_total(item) for item in order.line_items)
