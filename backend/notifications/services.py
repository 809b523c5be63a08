import logging

from terminals.services import DeviceRegistry
from .dispatcher import DispatchSummary, NotificationDispatcher, token_hint
from .exceptions import NoTargets
from .payloads import NotificationPayloadBuilder
from .transport import get_transport

logger = logging.getLogger(__name__)


class OrderNotificationService:
    """
    Alerts every registered staff device about one order.

    Order of checks: transport credentials, the order, the device registry,
    then the fan-out itself. Any failure before the fan-out raises and
    nothing is sent.
    """

    def __init__(self, transport=None, registry=None, builder=None, dispatcher=None):
        self._transport = transport
        self.registry = registry or DeviceRegistry()
        self.builder = builder or NotificationPayloadBuilder()
        self._dispatcher = dispatcher

    @property
    def transport(self):
        if self._transport is None:
            self._transport = get_transport()
        return self._transport

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            self._dispatcher = NotificationDispatcher(self.transport)
        return self._dispatcher

    def notify_order(self, order_id, deadline=None) -> DispatchSummary:
        # Import here to avoid circular imports
        from orders.services import OrderService

        # Credentials are checked before any store read or send.
        self.transport.ensure_initialized()

        order = OrderService.get_order(order_id)
        targets = self.registry.list_targets()
        if not targets:
            logger.warning(f"No POS devices registered; order {order.id} not pushed")
            raise NoTargets()

        payload = self.builder.build(order)
        logger.info(f"Sending order {order.id} ({order.table_name}) to {len(targets)} device(s)")

        summary = self.dispatcher.dispatch_sync(payload, targets, deadline=deadline)
        if summary.failed:
            for outcome in summary.outcomes:
                if not outcome.ok:
                    logger.warning(f"Order {order.id}: device {token_hint(outcome.token)} failed: {outcome.error}")
        return summary
