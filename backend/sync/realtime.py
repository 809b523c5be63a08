"""
Pull-on-signal synchronization over a Channels group.

Change events only say "something changed". Observers react by re-reading
the full order list from the database; the event payload is never used as
data. Each observer has a ResyncSlot so its re-reads never overlap and a
burst of events collapses into at most one extra re-read.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings

logger = logging.getLogger(__name__)

# Channel layer message type; consumers handle it in `order_change`
ORDER_CHANGE_TYPE = "order.change"

Resync = Callable[[], Awaitable[None]]


def feed_group_name() -> str:
    return getattr(settings, "ORDERS_REALTIME_FEED", "orders-realtime")


class ResyncSlot:
    """
    Serializes one observer's resynchronizations.

    At most one resync runs at a time. Signals received while it runs are
    coalesced into a single follow-up run, so the view always ends up
    reflecting a read that started after the last signal.
    """

    def __init__(self, resync: Resync, name: str = ""):
        self._resync = resync
        self.name = name
        self._task: Optional[asyncio.Task] = None
        self._pending = False
        self._closed = False
        self.completed_runs = 0

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def signal(self) -> Optional[asyncio.Task]:
        """Request a resync. Returns the task that will serve the request."""
        if self._closed:
            return None
        if self.busy:
            self._pending = True
            return self._task
        self._task = asyncio.ensure_future(self._run())
        return self._task

    async def _run(self):
        while True:
            self._pending = False
            try:
                await self._resync()
                self.completed_runs += 1
            except Exception as e:
                logger.error(f"Resync failed for observer {self.name or id(self)}: {e}")
            if self._closed or not self._pending:
                break

    async def wait_idle(self):
        while self.busy:
            await asyncio.shield(self._task)

    async def close(self):
        """Stop accepting signals and cancel any in-flight resync."""
        self._closed = True
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)


class Subscription:
    """A live registration on a change feed. Release it when the observer goes away."""

    def __init__(self, client, feed_name: str, channel_name: str, slot: ResyncSlot):
        self.client = client
        self.feed_name = feed_name
        self.channel_name = channel_name
        self.slot = slot
        self.reader: Optional[asyncio.Task] = None
        self.released = False

    async def release(self):
        if self.released:
            return
        self.released = True

        if self.reader is not None and not self.reader.done():
            self.reader.cancel()
            await asyncio.gather(self.reader, return_exceptions=True)

        try:
            await self.client.channel_layer.group_discard(self.feed_name, self.channel_name)
        except Exception as e:
            logger.warning(f"Failed to leave feed {self.feed_name} for {self.channel_name}: {e}")

        await self.slot.close()
        self.client.subscriptions.discard(self)
        logger.info(f"Released subscription {self.channel_name} on {self.feed_name}")


class RealtimeSyncClient:
    """
    Subscribes observers to a named change feed on the channel layer.

    Every event on the feed triggers the observer's resync callback through
    its ResyncSlot. If reading from the layer fails, the subscription
    re-joins the feed with capped backoff and schedules a resync, since
    events may have been missed while disconnected.
    """

    RECONNECT_BASE_DELAY = 0.5
    RECONNECT_MAX_DELAY = 30.0

    def __init__(self, channel_layer=None):
        self.channel_layer = channel_layer or get_channel_layer()
        if self.channel_layer is None:
            raise RuntimeError("No channel layer configured (CHANNEL_LAYERS)")
        self.subscriptions = set()

    async def subscribe(self, feed_name: str, resync: Resync, initial_sync: bool = True) -> Subscription:
        channel_name = await self.channel_layer.new_channel()
        await self.channel_layer.group_add(feed_name, channel_name)

        slot = ResyncSlot(resync, name=channel_name)
        subscription = Subscription(self, feed_name, channel_name, slot)
        subscription.reader = asyncio.ensure_future(self._read(subscription))
        self.subscriptions.add(subscription)
        logger.info(f"Subscribed {channel_name} to {feed_name}")

        if initial_sync:
            slot.signal()
        return subscription

    async def release_all(self):
        for subscription in list(self.subscriptions):
            await subscription.release()

    async def _read(self, subscription: Subscription):
        failures = 0
        while True:
            try:
                message = await self.channel_layer.receive(subscription.channel_name)
            except Exception as e:
                failures += 1
                delay = min(self.RECONNECT_MAX_DELAY, self.RECONNECT_BASE_DELAY * (2 ** (failures - 1)))
                logger.warning(
                    f"Feed {subscription.feed_name} receive failed ({e}); re-subscribing in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
                await self._rejoin(subscription)
                continue

            failures = 0
            if message.get("type") == ORDER_CHANGE_TYPE:
                logger.debug(
                    f"{subscription.channel_name}: {message.get('event')} on order {message.get('order_id')}"
                )
                subscription.slot.signal()
            else:
                logger.debug(f"{subscription.channel_name}: ignoring message type {message.get('type')}")

    async def _rejoin(self, subscription: Subscription):
        try:
            await self.channel_layer.group_add(subscription.feed_name, subscription.channel_name)
        except Exception as e:
            logger.error(f"Re-subscribe to {subscription.feed_name} failed: {e}")
            return
        subscription.slot.signal()


async def apublish_order_change(event: str, order_id, channel_layer=None):
    channel_layer = channel_layer or get_channel_layer()
    await channel_layer.group_send(
        feed_group_name(),
        {"type": ORDER_CHANGE_TYPE, "event": event, "order_id": str(order_id)},
    )


def publish_order_change(event: str, order_id, channel_layer=None):
    """
    Announce that an order was written. Best effort: a layer failure is
    logged and never propagates into the write that triggered it.
    """
    channel_layer = channel_layer or get_channel_layer()
    if not channel_layer:
        logger.warning("Channel layer not available. Cannot publish order change.")
        return

    try:
        async_to_sync(apublish_order_change)(event, order_id, channel_layer)
        logger.debug(f"Published {event} for order {order_id} on {feed_group_name()}")
    except Exception as e:
        logger.error(f"Failed to publish {event} for order {order_id}: {e}")
