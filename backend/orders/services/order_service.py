import logging
import uuid
from typing import Iterable, List

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from orders.exceptions import EmptyCart, OrderNotFound, PersistenceError
from orders.models import Order, OrderItem
from orders.services.state_machine import OrderStateMachine

logger = logging.getLogger(__name__)


class OrderService:
    """Order intake and status updates for the customer and staff surfaces."""

    @staticmethod
    def normalize_items(items: Iterable[dict]) -> List[dict]:
        """
        Validate submitted cart lines against the OrderItem schema.

        Lines with quantity 0 are dropped. Raises EmptyCart when nothing is
        left and ValidationError for malformed lines.
        """
        # Import locally to prevent circular dependency
        from orders.serializers import OrderItemInputSerializer

        items = list(items or [])
        if not items:
            raise EmptyCart()

        serializer = OrderItemInputSerializer(data=items, many=True)
        if not serializer.is_valid():
            raise ValidationError(OrderService._flatten_item_errors(serializer.errors))

        lines = [line for line in serializer.validated_data if line["quantity"] > 0]
        if not lines:
            raise EmptyCart()
        return lines

    @staticmethod
    def _flatten_item_errors(errors) -> dict:
        """
        DRF list-serializer errors as plain strings, e.g.
        {"items": ["line 1: price: Ensure this value is greater than or equal to 0."]}
        """
        if isinstance(errors, dict):
            errors = [errors]

        messages = []
        for position, line_errors in enumerate(errors, start=1):
            for field, field_errors in (line_errors or {}).items():
                for error in field_errors:
                    messages.append(f"line {position}: {field}: {error}")
        return {"items": messages}

    @staticmethod
    def submit_order(table_name: str, items: Iterable[dict]) -> uuid.UUID:
        """
        Persists a new order and queues the staff notification fan-out.

        The caller gets the order id as soon as the order is committed.
        Fan-out runs after commit and its outcome never affects the order.
        """
        lines = OrderService.normalize_items(items)

        table_name = (table_name or "").strip()
        if not table_name:
            raise ValidationError({"table_name": "This field may not be blank."})

        try:
            with transaction.atomic():
                order = Order.objects.create(table_name=table_name)
                OrderItem.objects.bulk_create(
                    [
                        OrderItem(
                            order=order,
                            menu_item_id=line["id"],
                            name=line["name"],
                            price=line["price"],
                            quantity=line["quantity"],
                            position=position,
                        )
                        for position, line in enumerate(lines)
                    ]
                )
                order_id = order.id
                transaction.on_commit(
                    lambda: OrderService._queue_new_order_notification(order_id)
                )
        except DatabaseError as e:
            logger.error(f"Failed to persist order for table {table_name}: {e}")
            raise PersistenceError(f"Failed to persist order: {e}") from e

        logger.info(f"Order {order_id} placed for {table_name} with {len(lines)} item(s)")
        return order_id

    @staticmethod
    def _queue_new_order_notification(order_id):
        """Queue the fan-out task. Never raises into order placement."""
        try:
            from notifications.tasks import send_new_order_notification

            send_new_order_notification.delay(str(order_id))
            logger.info(f"Queued new order notification for order {order_id}")
        except Exception as e:
            logger.error(f"Failed to queue notification for order {order_id}: {e}")

    @staticmethod
    def get_order(order_id) -> Order:
        try:
            return Order.objects.prefetch_related("items").get(id=order_id)
        except (Order.DoesNotExist, ValidationError, ValueError):
            raise OrderNotFound(order_id)
        except DatabaseError as e:
            raise PersistenceError(f"Failed to read order {order_id}: {e}") from e

    @staticmethod
    def list_orders():
        """All orders, newest first, with items loaded."""
        try:
            return list(Order.objects.prefetch_related("items").order_by("-created_at"))
        except DatabaseError as e:
            raise PersistenceError(f"Failed to read orders: {e}") from e

    @staticmethod
    def update_status(order_id, new_status: str, state_machine: OrderStateMachine = None) -> Order:
        """
        Applies a status change and persists it.

        The order is always re-read so no status is carried over from an
        earlier call. Returns the persisted order; on PersistenceError the
        caller must not assume the new status took effect.
        """
        state_machine = state_machine or OrderStateMachine()

        order = OrderService.get_order(order_id)
        updated = state_machine.apply(order, new_status)

        if updated.status == order.status:
            logger.debug(f"Order {order.id} already {new_status}, nothing to persist")
            return order

        try:
            with transaction.atomic():
                updated.save(update_fields=["status", "updated_at"])
        except DatabaseError as e:
            logger.error(f"Failed to persist status {new_status} for order {order.id}: {e}")
            raise PersistenceError(f"Failed to update order {order.id}: {e}") from e

        logger.info(f"Order {order.id} status {order.status} -> {updated.status}")
        return updated
