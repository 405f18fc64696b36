"""Order storage for pallet."""

import fcntl
import json
import os
import tempfile
from collections.abc import Iterable
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import structlog

from .collection import OrderCollection
from .errors import (
    InvalidSchemaVersionError,
    StoreExistsError,
    StoreNotFoundError,
)
from .models import CurrentUser, Order

logger = structlog.get_logger(__name__)

SCHEMA_VERSION = 1

# Can be overridden via PALLET_DATA_DIR environment variable
DEFAULT_DATA_DIR = Path("data")
ORDERS_FILE = "orders.json"
LOCK_FILE = ".orders.lock"


def default_data_dir() -> Path:
    return Path(os.environ.get("PALLET_DATA_DIR", DEFAULT_DATA_DIR))


class OrderStore:
    """
    Reads and writes the order collection as a single JSON document.

    Writes go to a temp file that is renamed over orders.json, and
    read-modify-write operations hold an exclusive lock. There is no
    version comparison between writers: the last write wins.
    """

    def __init__(self, data_dir: Path | None = None):
        """
        Initialize OrderStore.

        Args:
            data_dir: Override data directory (for testing).
        """
        self.data_dir = Path(data_dir) if data_dir else default_data_dir()
        self.path = self.data_dir / ORDERS_FILE

    def _ensure_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _lock(self) -> Iterator[None]:
        """Acquire exclusive lock on the orders file for read-modify-write operations."""
        self._ensure_dir()
        lock_path = self.data_dir / LOCK_FILE
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def exists(self) -> bool:
        """Check if the orders file exists."""
        return self.path.exists()

    def _load_data(self) -> dict[str, Any]:
        if not self.exists():
            raise StoreNotFoundError(str(self.path))

        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        version = data.get("schema_version", 0)
        if version != SCHEMA_VERSION:
            raise InvalidSchemaVersionError(version, SCHEMA_VERSION)
        return data

    def _save_data(self, data: dict[str, Any]) -> None:
        """Save data to disk atomically (write to temp, then rename)."""
        self._ensure_dir()

        fd, temp_path = tempfile.mkstemp(dir=self.data_dir, prefix=".orders_", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(temp_path, self.path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def load(self) -> OrderCollection:
        """
        Load all orders.

        Raises:
            StoreNotFoundError: If the store doesn't exist.
            InvalidSchemaVersionError: If schema version is unsupported.
        """
        data = self._load_data()
        return OrderCollection(
            orders=tuple(Order.from_dict(o) for o in data.get("orders", []))
        )

    def save(self, collection: OrderCollection) -> None:
        """Replace the stored collection."""
        with self._lock():
            self._write(collection.orders)

    def _write(self, orders: Iterable[Order]) -> None:
        self._save_data(
            {
                "schema_version": SCHEMA_VERSION,
                "orders": [o.to_dict() for o in orders],
            }
        )

    def init(self, force: bool = False) -> OrderCollection:
        """
        Create an empty store.

        Raises:
            StoreExistsError: If the store exists and force=False.
        """
        if self.exists() and not force:
            raise StoreExistsError(str(self.path))
        collection = OrderCollection()
        self.save(collection)
        logger.info("Order store initialized", path=str(self.path))
        return collection

    def list_orders(self, include_archived: bool = False) -> list[Order]:
        collection = self.load()
        if include_archived:
            return list(collection.orders)
        return collection.active()

    def get(self, order_ref: str) -> Order:
        """
        Get an order by ID (supports partial ID matching) or order number.

        Raises:
            OrderNotFoundError: If no order matches or the match is ambiguous.
        """
        return self.load().find(order_ref)

    def put(self, *orders: Order) -> None:
        """Insert or replace orders by ID."""
        with self._lock():
            collection = self.load()
            for order in orders:
                collection = collection.upsert(order)
            self._write(collection.orders)

    def delete(self, order_ids: Iterable[str], actor: CurrentUser) -> list[Order]:
        """
        Permanently remove orders by exact ID.

        Returns:
            The orders that were removed.
        """
        order_ids = set(order_ids)
        with self._lock():
            collection = self.load()
            removed = [o for o in collection.orders if o.id in order_ids]
            self._write(collection.delete_orders(order_ids, actor).orders)
        return removed
