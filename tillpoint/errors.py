"""
Typed errors raised by the till core.

    TillError
    +-- ValidationError       bad request, unknown product, not enough stock
    +-- StateError            wrong lifecycle state for the operation
    +-- NotFoundError         unknown order, item, session or staff id
    +-- InfrastructureError   store unreachable, till lock unusable

Every class carries a machine-readable ``code`` so the command surface can
return it next to the message.
"""
from __future__ import annotations


class TillError(Exception):
    code = "TILL_ERROR"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message())

    def default_message(self) -> str:
        return self.code


class ValidationError(TillError):
    code = "VALIDATION_ERROR"


class StateError(TillError):
    code = "STATE_ERROR"


class NotFoundError(TillError):
    code = "NOT_FOUND"


class InfrastructureError(TillError):
    code = "INFRASTRUCTURE_ERROR"


# Validation

class InvalidRequest(ValidationError):
    code = "INVALID_REQUEST"


class ProductNotFound(ValidationError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class InsufficientStock(ValidationError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product: str, requested: int, available: int):
        self.product = product
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {product}: requested {requested}, available {available}"
        )


# Lifecycle state

class DayNotStarted(StateError):
    code = "DAY_NOT_STARTED"

    def default_message(self) -> str:
        return "Day is not started. Please start the day first."


class SessionAlreadyActive(StateError):
    code = "SESSION_ALREADY_ACTIVE"

    def default_message(self) -> str:
        return "A day session is already active"


class NoActiveSession(StateError):
    code = "NO_ACTIVE_SESSION"

    def default_message(self) -> str:
        return "No active day session"


class EmptySession(StateError):
    code = "EMPTY_SESSION"

    def default_message(self) -> str:
        return "Cannot close a session without orders"


class OpenOrdersRemain(StateError):
    code = "OPEN_ORDERS_REMAIN"

    def __init__(self, open_orders: int):
        self.open_orders = open_orders
        super().__init__(
            f"Cannot close the day: {open_orders} open order(s) must be paid first"
        )


class OrderClosed(StateError):
    code = "ORDER_CLOSED"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Cannot modify paid order {order_id}")


class NotFoundOrAlreadyPaid(StateError):
    code = "NOT_FOUND_OR_ALREADY_PAID"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found or already paid")


class SessionAlreadyClosedForDate(StateError):
    code = "SESSION_ALREADY_CLOSED_FOR_DATE"

    def __init__(self, day):
        self.day = day
        super().__init__(f"A closed session already exists for {day}")


class NoOrphanedOrders(StateError):
    code = "NO_ORPHANED_ORDERS"

    def __init__(self, day):
        self.day = day
        super().__init__(f"No orders without a session found for {day}")


# Not found

class OrderNotFound(NotFoundError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class OrderItemNotFound(NotFoundError):
    code = "ORDER_ITEM_NOT_FOUND"

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Order item not found: {item_id}")


class SessionNotFound(NotFoundError):
    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(f"Day session not found: {session_id}")


class StaffNotFound(NotFoundError):
    code = "STAFF_NOT_FOUND"

    def __init__(self, staff_id: int):
        self.staff_id = staff_id
        super().__init__(f"Staff member not found: {staff_id}")


# Infrastructure

class StoreUnavailable(InfrastructureError):
    code = "STORE_UNAVAILABLE"


class LockUnavailable(InfrastructureError):
    code = "LOCK_UNAVAILABLE"
