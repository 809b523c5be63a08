"""
Order Feed Tests

Covers the snapshot read used by realtime observers, the post_save hook
that publishes order changes, and the staff websocket at ws/orders/.

Test Categories:
1. OrderSnapshotService (read + quarantine)
2. Change publishing on order writes
3. OrderFeedConsumer over a websocket
"""
from decimal import Decimal
from unittest.mock import call, patch

import pytest
from channels.db import database_sync_to_async
from channels.testing import WebsocketCommunicator

from core_backend.asgi import application
from orders.models import Order, OrderItem
from orders.services import OrderService
from sync.realtime import apublish_order_change
from sync.services import OrderSnapshotService

CART = [{"id": "ramen", "name": "Ramen", "price": "980", "quantity": 1}]


# ============================================================================
# SNAPSHOT SERVICE
# ============================================================================

@pytest.mark.django_db
class TestOrderSnapshotService:

    def test_snapshot_shape(self, table_a_order):
        snapshot = OrderSnapshotService.fetch_orders()

        assert len(snapshot) == 1
        assert snapshot[0]["id"] == str(table_a_order.id)
        assert snapshot[0]["table_name"] == "Table A"
        assert [item["id"] for item in snapshot[0]["items"]] == ["ramen", "gyoza"]

    def test_order_without_items_is_quarantined(self, table_a_order):
        Order.objects.create(table_name="Broken")

        snapshot = OrderSnapshotService.fetch_orders()

        assert [o["table_name"] for o in snapshot] == ["Table A"]

    def test_invalid_item_rows_are_quarantined(self, make_order):
        """
        Scenario:
        - A row written outside the ordering API has a negative price
          and a nameless line
        - Expected: the order is left out of the snapshot, others remain
        """
        good = make_order("Table A")
        bad = make_order("Table B", [("ramen", "Ramen", "-1.00", 1)])
        OrderItem.objects.create(order=bad, menu_item_id="tea", name="", price=Decimal("0"), quantity=1)

        snapshot = OrderSnapshotService.fetch_orders()

        assert [o["id"] for o in snapshot] == [str(good.id)]
        assert OrderSnapshotService.item_problems(bad)


# ============================================================================
# CHANGE PUBLISHING
# ============================================================================

@pytest.mark.django_db
class TestChangePublishing:

    def test_insert_and_update_are_published_after_commit(self, django_capture_on_commit_callbacks):
        with patch("sync.signals.publish_order_change") as mock_publish, \
                patch("notifications.tasks.send_new_order_notification.delay"):
            with django_capture_on_commit_callbacks(execute=True):
                order_id = OrderService.submit_order("Table A", CART)
            with django_capture_on_commit_callbacks(execute=True):
                OrderService.update_status(order_id, "provided")

        assert mock_publish.call_args_list == [
            call("INSERT", str(order_id)),
            call("UPDATE", str(order_id)),
        ]

    def test_nothing_published_before_commit(self, django_capture_on_commit_callbacks):
        with patch("sync.signals.publish_order_change") as mock_publish:
            with django_capture_on_commit_callbacks(execute=False) as callbacks:
                Order.objects.create(table_name="Table A")

        mock_publish.assert_not_called()
        assert len(callbacks) == 1


# ============================================================================
# WEBSOCKET CONSUMER
# ============================================================================

async def _receive_snapshot(communicator, predicate=lambda message: True, attempts=5):
    """Read messages until an orders_snapshot matching `predicate` arrives."""
    for _ in range(attempts):
        message = await communicator.receive_json_from(timeout=2)
        if message["type"] == "orders_snapshot" and predicate(message):
            return message
    raise AssertionError("no matching orders_snapshot received")


@pytest.mark.django_db(transaction=True)
@pytest.mark.asyncio
class TestOrderFeedConsumer:

    async def test_connect_sends_snapshot(self, channel_layer, table_a_order):
        communicator = WebsocketCommunicator(application, "/ws/orders/")
        connected, _ = await communicator.connect()
        assert connected

        message = await communicator.receive_json_from(timeout=2)

        assert message["type"] == "orders_snapshot"
        assert [o["id"] for o in message["orders"]] == [str(table_a_order.id)]
        await communicator.disconnect()

    async def test_ping(self, channel_layer):
        communicator = WebsocketCommunicator(application, "/ws/orders/")
        await communicator.connect()
        await _receive_snapshot(communicator)

        await communicator.send_json_to({"type": "ping"})
        response = await communicator.receive_json_from(timeout=2)

        assert response["type"] == "pong"
        await communicator.disconnect()

    async def test_unknown_message_type(self, channel_layer):
        communicator = WebsocketCommunicator(application, "/ws/orders/")
        await communicator.connect()
        await _receive_snapshot(communicator)

        await communicator.send_json_to({"type": "subscribe"})
        response = await communicator.receive_json_from(timeout=2)

        assert response["type"] == "error"
        await communicator.disconnect()

    async def test_refresh_re_reads_orders(self, channel_layer):
        communicator = WebsocketCommunicator(application, "/ws/orders/")
        await communicator.connect()
        first = await _receive_snapshot(communicator)
        assert first["orders"] == []

        order = await database_sync_to_async(Order.objects.create)(table_name="Table B")
        await database_sync_to_async(OrderItem.objects.create)(
            order=order, menu_item_id="ramen", name="Ramen", price=Decimal("980"), quantity=1
        )
        await communicator.send_json_to({"type": "refresh"})

        message = await _receive_snapshot(communicator, lambda m: len(m["orders"]) == 1)
        assert message["orders"][0]["table_name"] == "Table B"
        await communicator.disconnect()

    async def test_new_order_pushes_fresh_snapshot(self, channel_layer):
        """
        Scenario:
        - Staff view is connected with no orders
        - A customer places an order
        - Expected: a new snapshot with that order arrives without the
          staff view asking for it
        """
        communicator = WebsocketCommunicator(application, "/ws/orders/")
        await communicator.connect()
        await _receive_snapshot(communicator)

        with patch("notifications.tasks.send_new_order_notification.delay"):
            order_id = await database_sync_to_async(OrderService.submit_order)("Table C", CART)

        message = await _receive_snapshot(communicator, lambda m: len(m["orders"]) == 1)
        assert message["orders"][0]["id"] == str(order_id)
        await communicator.disconnect()

    async def test_status_change_pushes_fresh_snapshot(self, channel_layer, make_order):
        order = await database_sync_to_async(make_order)("Table A")
        communicator = WebsocketCommunicator(application, "/ws/orders/")
        await communicator.connect()
        await _receive_snapshot(communicator)

        await database_sync_to_async(OrderService.update_status)(order.id, "paid")

        message = await _receive_snapshot(
            communicator, lambda m: m["orders"] and m["orders"][0]["status"] == "paid"
        )
        assert message["orders"][0]["id"] == str(order.id)
        await communicator.disconnect()

    async def test_event_payload_is_not_trusted(self, channel_layer, table_a_order):
        """
        The snapshot after an event always comes from a re-read, even when
        the event names an order that does not exist.
        """
        communicator = WebsocketCommunicator(application, "/ws/orders/")
        await communicator.connect()
        await _receive_snapshot(communicator)

        await apublish_order_change("INSERT", "not-an-order", channel_layer)
        message = await _receive_snapshot(communicator)

        assert [o["id"] for o in message["orders"]] == [str(table_a_order.id)]
        await communicator.disconnect()
