import copy
import logging

from django.conf import settings

from orders.exceptions import InvalidStatusTransition
from orders.models import Order

logger = logging.getLogger(__name__)


class OrderStateMachine:
    """
    Validates and applies status changes to a single order.

    The default mode is lenient: any of the three statuses may be requested
    from any other, which matches how a single staff station corrects
    mistakes (e.g. re-opening a paid order). Strict mode only accepts forward
    moves along unprovided -> provided -> paid. Re-applying the current status
    is accepted in both modes and changes nothing.
    """

    # Position of each status along the normal fulfillment flow
    STATUS_SEQUENCE = [
        Order.OrderStatus.UNPROVIDED,
        Order.OrderStatus.PROVIDED,
        Order.OrderStatus.PAID,
    ]

    def __init__(self, strict=None):
        if strict is None:
            strict = getattr(settings, "ORDERS_STRICT_STATUS_TRANSITIONS", False)
        self.strict = strict

    def can_transition(self, current_status: str, new_status: str) -> bool:
        if new_status not in Order.OrderStatus.values:
            return False
        if current_status == new_status or not self.strict:
            return True
        if current_status not in Order.OrderStatus.values:
            # Legacy or corrupt value; only strict mode cares.
            return False
        return self.STATUS_SEQUENCE.index(new_status) > self.STATUS_SEQUENCE.index(current_status)

    def apply(self, order: Order, new_status: str) -> Order:
        """
        Return a copy of `order` carrying `new_status`.

        The passed instance is left untouched so callers never observe a
        status that has not been persisted yet.
        """
        if new_status not in Order.OrderStatus.values:
            raise InvalidStatusTransition(
                order.status,
                new_status,
                reason=f"'{new_status}' is not a valid order status.",
            )

        if not self.can_transition(order.status, new_status):
            raise InvalidStatusTransition(order.status, new_status)

        updated = copy.copy(order)
        if order.status != new_status:
            logger.debug(f"Order {order.id}: {order.status} -> {new_status}")
            updated.status = new_status
        return updated
