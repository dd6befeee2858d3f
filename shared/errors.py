"""
Typed failures raised by the order and stock core.

Every error carries the HTTP status the API layer answers with, so routers
never have to guess. They are raised before any write whenever the
condition can be checked up front; otherwise the surrounding transaction
rolls the partial work back.
"""


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(DomainError):
    """Well-formed request whose values break a business rule."""


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    status_code = 409


class OrderNotFound(NotFoundError):
    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class VariantNotFound(NotFoundError):
    def __init__(self, variant_id: str):
        super().__init__(f"Variant {variant_id} not found")
        self.variant_id = variant_id


class CartItemNotFound(NotFoundError):
    def __init__(self, item_id: str):
        super().__init__(f"Cart item {item_id} not found")
        self.item_id = item_id


class StockItemNotFound(NotFoundError):
    def __init__(self, variant_id: str, store_id: str):
        super().__init__(f"Stock item not found for variant {variant_id}")
        self.variant_id = variant_id
        self.store_id = store_id


class StockItemMissing(StockItemNotFound):
    """An order references a variant with no stock row; the order, not the request, is inconsistent."""
    status_code = 409


class StockItemExists(ConflictError):
    def __init__(self, variant_id: str):
        super().__init__(f"Stock item already exists for variant {variant_id}")
        self.variant_id = variant_id


class InsufficientStock(DomainError):
    def __init__(self, variant_id: str, requested: int, available: int | None = None):
        message = f"Insufficient stock for variant {variant_id}"
        if available is not None:
            message += f" (requested {requested}, available {available})"
        super().__init__(message)
        self.variant_id = variant_id
        self.requested = requested
        self.available = available


class StockInvariantViolation(ConflictError):
    """A ledger operation would leave reserved < 0, reserved > count or count < 0."""


class InvalidTransition(DomainError):
    def __init__(self, current: str, target: str, detail: str | None = None):
        message = f"Invalid status transition from {current} to {target}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.current = current
        self.target = target


class EmptyCart(DomainError):
    def __init__(self):
        super().__init__("Cart is empty")


class TransactionTimeout(DomainError):
    status_code = 503

    def __init__(self, timeout: float):
        super().__init__(f"Transaction exceeded {timeout:g}s and was rolled back")
        self.timeout = timeout


class NotificationFailed(DomainError):
    status_code = 502

    def __init__(self, order_id: str):
        super().__init__(f"Could not send notification for order {order_id}")
        self.order_id = order_id
