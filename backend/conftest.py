"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import threading
import time
from decimal import Decimal

import pytest
from django.apps import apps

from notifications.transport import PushTransport


# ============================================================================
# API CLIENT
# ============================================================================

@pytest.fixture
def api_client():
    """
    Unauthenticated DRF API client.

    Usage:
        def test_my_api(api_client):
            response = api_client.get('/api/orders/')
    """
    from rest_framework.test import APIClient
    return APIClient()


# ============================================================================
# ORDER FIXTURES
# ============================================================================

@pytest.fixture
def make_order(db):
    """
    Factory for orders with item lines written straight to the database.

    Usage:
        order = make_order("Table A", [("ramen", "Ramen", "980.00", 2)])
    """
    from orders.models import Order, OrderItem

    def _make_order(table_name="Table A", lines=None, status=Order.OrderStatus.UNPROVIDED):
        if lines is None:
            lines = [("ramen", "Ramen", "980.00", 2), ("gyoza", "Gyoza", "450.00", 1)]
        order = Order.objects.create(table_name=table_name, status=status)
        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    menu_item_id=menu_item_id,
                    name=name,
                    price=Decimal(price),
                    quantity=quantity,
                    position=position,
                )
                for position, (menu_item_id, name, price, quantity) in enumerate(lines)
            ]
        )
        return order

    return _make_order


@pytest.fixture
def table_a_order(make_order):
    """Two-line order for "Table A"."""
    return make_order("Table A")


# ============================================================================
# DEVICE FIXTURES
# ============================================================================

@pytest.fixture
def push_devices(db):
    """Two distinct registered staff devices."""
    from terminals.models import PushDevice

    return [
        PushDevice.objects.create(fcm_token="device-token-aaaaaaaaaaaa", label="Register"),
        PushDevice.objects.create(fcm_token="device-token-bbbbbbbbbbbb", label="Kitchen"),
    ]


# ============================================================================
# PUSH TRANSPORT FIXTURES
# ============================================================================

class FakeTransport(PushTransport):
    """
    In-memory push transport.

    Records every message it is asked to send. Tokens listed in
    `fail_tokens` raise, tokens in `empty_tokens` return no message id and
    `delay` makes each send block for that many seconds.
    """

    def __init__(self, fail_tokens=(), empty_tokens=(), delay=0, fail_times=None):
        self.fail_tokens = set(fail_tokens)
        self.empty_tokens = set(empty_tokens)
        self.delay = delay
        # token -> number of leading attempts that fail before succeeding
        self.fail_times = dict(fail_times or {})
        self.messages = []
        self.initialized = 0
        self._lock = threading.Lock()

    @property
    def sent_tokens(self):
        return [message.token for message in self.messages]

    def ensure_initialized(self):
        self.initialized += 1

    def send(self, message):
        if self.delay:
            time.sleep(self.delay)

        with self._lock:
            self.messages.append(message)
            count = len(self.messages)
            token = message.token
            if self.fail_times.get(token, 0) > 0:
                self.fail_times[token] -= 1
                raise ConnectionError("transient transport error")

        if token in self.fail_tokens:
            raise ValueError(f"Requested entity was not found: {token}")
        if token in self.empty_tokens:
            return ""
        return f"projects/test/messages/{count}"


class UnconfiguredTransport(PushTransport):
    """Transport whose credentials check always fails."""

    def __init__(self):
        self.sent = 0

    def ensure_initialized(self):
        from notifications.exceptions import TransportNotConfigured
        raise TransportNotConfigured("Missing FIREBASE_PRIVATE_KEY")

    def send(self, message):
        self.sent += 1
        return "should-not-happen"


@pytest.fixture
def fake_transport(monkeypatch):
    """Install a FakeTransport as the process-wide push transport."""
    transport = FakeTransport()
    monkeypatch.setattr(apps.get_app_config("notifications"), "transport", transport)
    return transport


@pytest.fixture
def no_transport(monkeypatch):
    """Simulate a process started without push credentials."""
    monkeypatch.setattr(apps.get_app_config("notifications"), "transport", None)


@pytest.fixture
def transport_factory():
    """FakeTransport class, for tests that build their own dispatcher."""
    return FakeTransport


@pytest.fixture
def unconfigured_transport():
    return UnconfiguredTransport()
