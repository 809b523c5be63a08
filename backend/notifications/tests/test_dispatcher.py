"""
Notification Dispatcher Tests

Fan-out behaviour independent of the database: per-device isolation,
summary accounting, the empty-target guard, deadlines and retries.

Run with: pytest backend/notifications/tests/test_dispatcher.py -v
"""
import pytest

from notifications.dispatcher import NotificationDispatcher, NotificationOutcome, RetryPolicy
from notifications.exceptions import NoTargets
from notifications.payloads import NotificationPayload

NO_RETRY = RetryPolicy(max_attempts=1)


@pytest.fixture
def payload():
    return NotificationPayload(
        data={"orderId": "order-1", "tableName": "Table A", "status": "unprovided", "items": "[]"},
        title="新しい注文",
        body="Table Aから注文が入りました",
        android_priority="high",
        android_channel_id="orders",
        android_sound="notify",
        apns_sound="notify.caf",
    )


class TestFanOut:

    @pytest.mark.asyncio
    async def test_every_target_receives_one_send(self, payload, transport_factory):
        transport = transport_factory()
        dispatcher = NotificationDispatcher(transport, NO_RETRY)

        summary = await dispatcher.dispatch(payload, ["a", "b", "c"])

        assert sorted(transport.sent_tokens) == ["a", "b", "c"]
        assert summary.to_dict() == {"total": 3, "successful": 3, "failed": 0}

    @pytest.mark.asyncio
    async def test_failing_device_does_not_affect_others(self, payload, transport_factory):
        """
        CRITICAL: One stale token must not block the alert to the rest.
        """
        transport = transport_factory(fail_tokens={"b"})
        dispatcher = NotificationDispatcher(transport, NO_RETRY)

        summary = await dispatcher.dispatch(payload, ["a", "b", "c"])

        assert summary.total == summary.successful + summary.failed
        assert summary.successful == 2
        assert summary.failed == 1
        failed = [o for o in summary.outcomes if not o.ok]
        assert failed[0].token == "b"
        assert failed[0].status == NotificationOutcome.FAILED
        assert "ValueError" in failed[0].error

    @pytest.mark.asyncio
    async def test_all_devices_failing_still_returns_summary(self, payload, transport_factory):
        transport = transport_factory(fail_tokens={"a", "b"})
        dispatcher = NotificationDispatcher(transport, NO_RETRY)

        summary = await dispatcher.dispatch(payload, ["a", "b"])

        assert summary.to_dict() == {"total": 2, "successful": 0, "failed": 2}

    @pytest.mark.asyncio
    async def test_duplicate_targets_are_sent_once(self, payload, transport_factory):
        transport = transport_factory()
        dispatcher = NotificationDispatcher(transport, NO_RETRY)

        summary = await dispatcher.dispatch(payload, ["a", "a", "b"])

        assert summary.total == 2
        assert sorted(transport.sent_tokens) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_missing_message_id_counts_as_failure(self, payload, transport_factory):
        transport = transport_factory(empty_tokens={"a"})
        dispatcher = NotificationDispatcher(transport, NO_RETRY)

        summary = await dispatcher.dispatch(payload, ["a", "b"])

        assert summary.successful == 1
        assert summary.failed == 1

    @pytest.mark.asyncio
    async def test_no_targets_sends_nothing(self, payload, transport_factory):
        transport = transport_factory()
        dispatcher = NotificationDispatcher(transport, NO_RETRY)

        with pytest.raises(NoTargets) as exc_info:
            await dispatcher.dispatch(payload, [])

        assert str(exc_info.value) == "No POS devices found"
        assert transport.messages == []

    @pytest.mark.asyncio
    async def test_messages_carry_same_payload(self, payload, transport_factory):
        transport = transport_factory()
        dispatcher = NotificationDispatcher(transport, NO_RETRY)

        await dispatcher.dispatch(payload, ["a", "b"])

        assert all(message.data == payload.data for message in transport.messages)


class TestDeadline:

    @pytest.mark.asyncio
    async def test_sends_past_deadline_are_failed(self, payload, transport_factory):
        transport = transport_factory(delay=0.3)
        dispatcher = NotificationDispatcher(transport, NO_RETRY)

        summary = await dispatcher.dispatch(payload, ["a", "b"], deadline=0.01)

        assert summary.to_dict() == {"total": 2, "successful": 0, "failed": 2}
        assert all(o.error == "deadline exceeded" for o in summary.outcomes)

    @pytest.mark.asyncio
    async def test_no_deadline_waits_for_all(self, payload, transport_factory):
        transport = transport_factory(delay=0.05)
        dispatcher = NotificationDispatcher(transport, NO_RETRY, deadline=None)

        summary = await dispatcher.dispatch(payload, ["a", "b"])

        assert summary.successful == 2


class TestRetry:

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, payload, transport_factory):
        transport = transport_factory(fail_times={"a": 2})
        dispatcher = NotificationDispatcher(transport, RetryPolicy(max_attempts=3, base_delay=0, max_delay=0))

        summary = await dispatcher.dispatch(payload, ["a"])

        assert summary.successful == 1
        assert transport.sent_tokens == ["a", "a", "a"]

    @pytest.mark.asyncio
    async def test_attempts_are_bounded(self, payload, transport_factory):
        transport = transport_factory(fail_tokens={"a"})
        dispatcher = NotificationDispatcher(transport, RetryPolicy(max_attempts=2, base_delay=0, max_delay=0))

        summary = await dispatcher.dispatch(payload, ["a"])

        assert summary.failed == 1
        assert len(transport.messages) == 2

    def test_backoff_is_capped(self):
        policy = RetryPolicy(max_attempts=5, base_delay=0.5, max_delay=2.0)

        for attempt in range(1, 8):
            delay = policy.backoff(attempt)
            assert 0 <= delay <= min(2.0, 0.5 * 2 ** (attempt - 1))

    def test_policy_from_settings(self, settings):
        settings.PUSH_NOTIFICATIONS = {"MAX_ATTEMPTS": 3, "RETRY_BASE_DELAY": 0.1, "RETRY_MAX_DELAY": 1}

        policy = RetryPolicy.from_settings()

        assert policy == RetryPolicy(max_attempts=3, base_delay=0.1, max_delay=1.0)


class TestDispatchSync:

    def test_blocking_wrapper(self, payload, transport_factory):
        transport = transport_factory()
        dispatcher = NotificationDispatcher(transport, NO_RETRY)

        summary = dispatcher.dispatch_sync(payload, ["a", "b"])

        assert summary.successful == 2
