"""Custom exceptions for pallet."""


class PalletError(Exception):
    """Base exception for all pallet errors."""

    pass


class StoreNotFoundError(PalletError):
    """Raised when orders.json doesn't exist."""

    def __init__(self, path: str | None = None):
        self.path = path
        msg = "Order store not initialized. Run 'pallet init' first."
        if path:
            msg = f"Order store not found at {path}. Run 'pallet init' first."
        super().__init__(msg)


class StoreExistsError(PalletError):
    """Raised when trying to init but the store already exists."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Order store already exists at {path}. Use --force to overwrite.")


class InvalidSchemaVersionError(PalletError):
    """Raised when the store has an unsupported schema version."""

    def __init__(self, found: int, supported: int):
        self.found = found
        self.supported = supported
        super().__init__(
            f"Unsupported schema version {found}. This tool supports version {supported}."
        )


class OrderNotFoundError(PalletError):
    """Raised when an order ID doesn't exist."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class MissingCustomerError(PalletError):
    """Raised when an order is created without a customer name."""

    def __init__(self):
        super().__init__("Customer name is required to create an order")


class InvalidStatusError(PalletError):
    """Raised when a status is not one of the known stages."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Invalid status: {status}")


class TransitionNotAllowedError(PalletError):
    """Raised when a stage transition is refused."""

    def __init__(self, current: str, target: str, reason: str):
        self.current = current
        self.target = target
        self.reason = reason
        super().__init__(f"Cannot move from {current} to {target}: {reason}")


class PermissionDeniedError(PalletError):
    """Raised when the acting user lacks a permission."""

    def __init__(self, role: str, permission: str):
        self.role = role
        self.permission = permission
        super().__init__(f"Role '{role}' is not allowed to {permission}")


class ConfirmationRequiredError(PalletError):
    """Raised when a destructive action is missing its typed confirmation."""

    def __init__(self, expected: str):
        self.expected = expected
        super().__init__(f"Confirmation required: type '{expected}' to proceed")


class InvalidSizeSpecError(PalletError):
    """Raised when a size/quantity spec is invalid."""

    def __init__(self, spec: str, reason: str | None = None):
        self.spec = spec
        msg = f"Invalid size spec: {spec}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
