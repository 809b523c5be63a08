import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.utils import timezone

from .realtime import ResyncSlot, feed_group_name
from .services import OrderSnapshotService

logger = logging.getLogger(__name__)


class OrderFeedConsumer(AsyncWebsocketConsumer):
    """
    Staff order view over a websocket.

    Change events are treated purely as "something changed": every one of
    them triggers a full re-read and a fresh orders_snapshot. Re-reads for
    this connection never overlap and bursts are coalesced by a ResyncSlot.
    """

    async def connect(self):
        self.group_name = feed_group_name()
        self.slot = ResyncSlot(self.send_snapshot, name=self.channel_name)

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

        logger.info(f"Order feed connected: {self.channel_name}")

        # Initial load goes through the slot so it is serialized with later resyncs
        initial = self.slot.signal()
        if initial is not None:
            await initial

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
        if hasattr(self, "slot"):
            await self.slot.close()
        logger.info(f"Order feed disconnected: {self.channel_name}, code={close_code}")

    async def receive(self, text_data=None, bytes_data=None):
        try:
            data = json.loads(text_data or "")
        except json.JSONDecodeError:
            await self.send_error("Invalid JSON format")
            return

        message_type = data.get("type") if isinstance(data, dict) else None

        if message_type == "ping":
            await self.send(text_data=json.dumps({"type": "pong", "timestamp": self.get_timestamp()}))
        elif message_type == "refresh":
            self.slot.signal()
        else:
            await self.send_error(f"Unknown message type: {message_type}")

    async def order_change(self, event):
        """Handler for order.change messages on the feed group."""
        logger.debug(f"{self.channel_name}: {event.get('event')} on order {event.get('order_id')}")
        self.slot.signal()

    async def send_snapshot(self):
        orders = await database_sync_to_async(OrderSnapshotService.fetch_orders)()
        await self.send(
            text_data=json.dumps(
                {
                    "type": "orders_snapshot",
                    "orders": orders,
                    "timestamp": self.get_timestamp(),
                }
            )
        )
        logger.debug(f"Sent snapshot of {len(orders)} orders to {self.channel_name}")

    async def send_error(self, message):
        await self.send(text_data=json.dumps({"type": "error", "message": message}))

    def get_timestamp(self):
        return timezone.now().isoformat()
