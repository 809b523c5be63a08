"""
Domain errors raised by the orders services.
Views translate these into HTTP responses.
"""


class OrderError(Exception):
    """Base class for order domain errors."""


class EmptyCart(OrderError):
    """An order was submitted without any items."""

    def __init__(self, message="Cart is empty"):
        super().__init__(message)


class OrderNotFound(OrderError):
    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class InvalidStatusTransition(OrderError):
    def __init__(self, current_status, new_status, reason=None):
        self.current_status = current_status
        self.new_status = new_status
        message = reason or f"Cannot transition order from {current_status} to {new_status}."
        super().__init__(message)


class PersistenceError(OrderError):
    """The order store rejected a read or write. The cause is chained."""
