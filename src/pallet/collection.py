"""The in-memory order collection.

Mutation replaces the whole collection: every method returns a new
OrderCollection and leaves the original untouched.
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace

import structlog

from .errors import OrderNotFoundError
from .models import CurrentUser, Order, OrderStatus
from .stages import ORDER_STAGES, status_label

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OrderCollection:
    orders: tuple[Order, ...] = ()
    selected_id: str | None = None

    def __len__(self) -> int:
        return len(self.orders)

    def __iter__(self):
        return iter(self.orders)

    def get(self, order_id: str) -> Order:
        """
        Get an order by exact ID.

        Raises:
            OrderNotFoundError: If no order has this ID.
        """
        for order in self.orders:
            if order.id == order_id:
                return order
        raise OrderNotFoundError(order_id)

    def find(self, prefix: str) -> Order:
        """
        Get an order by ID prefix or exact order number.

        Raises:
            OrderNotFoundError: If nothing matches, or the prefix is ambiguous.
        """
        matches = [o for o in self.orders if o.id.startswith(prefix) or o.order_number == prefix]
        if not matches:
            raise OrderNotFoundError(prefix)
        if len(matches) > 1:
            raise OrderNotFoundError(f"{prefix} (ambiguous, matches {len(matches)} orders)")
        return matches[0]

    def add(self, *orders: Order) -> "OrderCollection":
        return replace(self, orders=self.orders + orders)

    def replace_order(self, order: Order) -> "OrderCollection":
        """
        Swap in a new value for the order with the same ID.

        Raises:
            OrderNotFoundError: If the collection has no order with this ID.
        """
        self.get(order.id)
        return replace(
            self, orders=tuple(order if o.id == order.id else o for o in self.orders)
        )

    def upsert(self, order: Order) -> "OrderCollection":
        if any(o.id == order.id for o in self.orders):
            return self.replace_order(order)
        return self.add(order)

    def select(self, order_id: str | None) -> "OrderCollection":
        if order_id is not None:
            self.get(order_id)
        return replace(self, selected_id=order_id)

    @property
    def selected(self) -> Order | None:
        if self.selected_id is None:
            return None
        return self.get(self.selected_id)

    def delete_orders(self, order_ids: Iterable[str], actor: CurrentUser) -> "OrderCollection":
        """
        Remove orders permanently.

        There is no tombstone or undo; callers confirm before calling.
        A selection pointing at a removed order is cleared. Unknown IDs
        are ignored.
        """
        doomed = set(order_ids)
        removed = [o for o in self.orders if o.id in doomed]
        kept = tuple(o for o in self.orders if o.id not in doomed)
        selected_id = None if self.selected_id in doomed else self.selected_id
        logger.warning(
            "Orders deleted",
            count=len(removed),
            order_numbers=[o.order_number for o in removed],
            actor=actor.id,
        )
        return OrderCollection(orders=kept, selected_id=selected_id)

    # Views

    def active(self) -> list[Order]:
        """Orders that are not archived."""
        return [o for o in self.orders if not o.is_archived]

    def archived(self) -> list[Order]:
        return [o for o in self.orders if o.is_archived]

    def board(self, stage: OrderStatus | str) -> list[Order]:
        """Non-archived orders currently at stage."""
        label = status_label(stage)
        return [o for o in self.active() if status_label(o.status) == label]

    def counts_by_stage(self) -> dict[str, int]:
        """Number of non-archived orders per stage, in pipeline order."""
        counts = {stage.value: 0 for stage in ORDER_STAGES}
        for order in self.active():
            label = status_label(order.status)
            if label in counts:
                counts[label] += 1
        return counts

    def by_customer(self, name: str) -> list[Order]:
        """Orders for a customer, matched case-insensitively, archived included."""
        needle = name.strip().lower()
        return [o for o in self.orders if o.customer.strip().lower() == needle]
