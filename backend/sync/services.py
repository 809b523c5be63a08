import logging
from decimal import Decimal

from django.db import DatabaseError

from orders.exceptions import PersistenceError
from orders.models import Order
from orders.serializers import OrderSerializer

logger = logging.getLogger(__name__)


class OrderSnapshotService:
    """Full re-reads of the order collection for realtime observers."""

    @staticmethod
    def item_problems(order: Order):
        """Reasons an order's stored items do not fit the cart line schema."""
        items = list(order.items.all())
        if not items:
            return ["order has no items"]

        problems = []
        for item in items:
            if not (item.menu_item_id or "").strip():
                problems.append(f"item {item.pk} has no menu item id")
            if not (item.name or "").strip():
                problems.append(f"item {item.pk} has no name")
            if item.price is None or Decimal(item.price) < 0:
                problems.append(f"item {item.pk} has invalid price {item.price}")
            if item.quantity is None or item.quantity < 1:
                problems.append(f"item {item.pk} has invalid quantity {item.quantity}")
        return problems

    @staticmethod
    def fetch_orders():
        """
        Every order, newest first, serialized for the staff view.

        Rows whose items fail validation are quarantined: logged and left out
        of the snapshot instead of being sent to observers.
        """
        try:
            orders = list(Order.objects.prefetch_related("items").order_by("-created_at"))
        except DatabaseError as e:
            raise PersistenceError(f"Failed to read orders: {e}") from e

        snapshot = []
        for order in orders:
            problems = OrderSnapshotService.item_problems(order)
            if problems:
                logger.warning(f"Quarantined order {order.id} from snapshot: {'; '.join(problems)}")
                continue
            snapshot.append(OrderSerializer(order).data)

        logger.debug(f"Order snapshot: {len(snapshot)} of {len(orders)} orders")
        return snapshot
