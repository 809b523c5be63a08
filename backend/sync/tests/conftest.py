import asyncio

import pytest
from channels.layers import get_channel_layer


@pytest.fixture
def channel_layer(settings):
    """A fresh in-memory channel layer for each test."""
    settings.CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}
    return get_channel_layer()


@pytest.fixture
def wait_until():
    """
    Poll an async-side condition.

    Usage:
        await wait_until(lambda: calls == 2)
    """
    async def _wait_until(predicate, timeout=2.0, interval=0.01):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(interval)

    return _wait_until
