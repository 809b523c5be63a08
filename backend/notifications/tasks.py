from celery import shared_task
import logging

from orders.exceptions import OrderError
from terminals.services import RegistryUnavailable
from .exceptions import NotificationError

logger = logging.getLogger(__name__)


@shared_task
def send_new_order_notification(order_id):
    """
    Push a new order to every staff device.

    Runs after the order is committed. Failures are logged and reported in
    the task result only; the order itself is never affected.
    """
    from .services import OrderNotificationService

    try:
        summary = OrderNotificationService().notify_order(order_id)
    except (NotificationError, OrderError, RegistryUnavailable) as e:
        logger.warning(f"New order notification for {order_id} not sent: {e}")
        return {"success": False, "error": str(e)}

    logger.info(f"New order notification for {order_id}: {summary.to_dict()}")
    return {"success": True, "summary": summary.to_dict()}
