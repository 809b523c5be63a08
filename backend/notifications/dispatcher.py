import asyncio
import logging
import random
from dataclasses import dataclass
from typing import ClassVar, Iterable, Optional, Tuple

from asgiref.sync import async_to_sync, sync_to_async
from django.conf import settings

from .exceptions import NoTargets
from .payloads import NotificationPayload
from .transport import PushTransport

logger = logging.getLogger(__name__)


def token_hint(token: str) -> str:
    """Short token suffix for logs; full tokens are delivery credentials."""
    return f"…{token[-8:]}" if len(token) > 8 else token


@dataclass(frozen=True)
class NotificationOutcome:
    FULFILLED: ClassVar[str] = "fulfilled"
    FAILED: ClassVar[str] = "failed"

    token: str
    status: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == self.FULFILLED


@dataclass(frozen=True)
class DispatchSummary:
    outcomes: Tuple[NotificationOutcome, ...]

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def successful(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return self.total - self.successful

    def to_dict(self):
        return {"total": self.total, "successful": self.successful, "failed": self.failed}


@dataclass(frozen=True)
class RetryPolicy:
    """
    Per-device retry with full-jitter exponential backoff.
    max_attempts=1 means a single send and no retry.
    """

    max_attempts: int = 1
    base_delay: float = 0.5
    max_delay: float = 5.0

    @classmethod
    def from_settings(cls):
        config = getattr(settings, "PUSH_NOTIFICATIONS", None) or {}
        return cls(
            max_attempts=max(1, int(config.get("MAX_ATTEMPTS", 1))),
            base_delay=float(config.get("RETRY_BASE_DELAY", 0.5)),
            max_delay=float(config.get("RETRY_MAX_DELAY", 5.0)),
        )

    def backoff(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based)."""
        ceiling = min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))
        return random.uniform(0, ceiling)


class NotificationDispatcher:
    """
    Fans one payload out to a set of device tokens.

    Every token gets its own concurrent send. A failing send is recorded and
    logged but never affects the other sends, and the summary is produced
    only after all of them have finished (or hit the deadline).
    """

    def __init__(self, transport: PushTransport, retry_policy: RetryPolicy = None, deadline: float = None):
        self.transport = transport
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        if deadline is None:
            config = getattr(settings, "PUSH_NOTIFICATIONS", None) or {}
            deadline = config.get("SEND_DEADLINE_SECONDS")
        self.deadline = deadline

    async def dispatch(
        self, payload: NotificationPayload, targets: Iterable[str], deadline: float = None
    ) -> DispatchSummary:
        tokens = list(dict.fromkeys(token for token in targets if token))
        if not tokens:
            raise NoTargets()

        deadline = self.deadline if deadline is None else deadline
        tasks = [asyncio.ensure_future(self._send_one(payload, token)) for token in tokens]

        done, pending = await asyncio.wait(tasks, timeout=deadline)
        for task in pending:
            task.cancel()
        if pending:
            # Let cancellations settle so no task outlives the dispatch
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(f"{len(pending)} of {len(tokens)} sends missed the {deadline}s deadline")

        outcomes = []
        for token, task in zip(tokens, tasks):
            if task in done:
                outcomes.append(task.result())
            else:
                outcomes.append(
                    NotificationOutcome(token, NotificationOutcome.FAILED, "deadline exceeded")
                )

        summary = DispatchSummary(tuple(outcomes))
        logger.info(
            f"Dispatch complete: total={summary.total} "
            f"successful={summary.successful} failed={summary.failed}"
        )
        return summary

    async def _send_one(self, payload: NotificationPayload, token: str) -> NotificationOutcome:
        send = sync_to_async(self.transport.send, thread_sensitive=False)
        error = None

        for attempt in range(1, self.retry_policy.max_attempts + 1):
            try:
                message_id = await send(payload.to_message(token))
            except Exception as e:
                error = f"{type(e).__name__}: {e}"
                logger.warning(
                    f"Send to device {token_hint(token)} failed "
                    f"(attempt {attempt}/{self.retry_policy.max_attempts}): {error}"
                )
            else:
                if message_id:
                    logger.debug(f"Sent to device {token_hint(token)}: {message_id}")
                    return NotificationOutcome(token, NotificationOutcome.FULFILLED)
                error = "transport returned no message id"
                logger.warning(f"Send to device {token_hint(token)} returned no message id")

            if attempt < self.retry_policy.max_attempts:
                await asyncio.sleep(self.retry_policy.backoff(attempt))

        return NotificationOutcome(token, NotificationOutcome.FAILED, error)

    def dispatch_sync(self, payload: NotificationPayload, targets: Iterable[str], deadline: float = None):
        """Blocking wrapper for views and Celery tasks."""
        return async_to_sync(self.dispatch)(payload, targets, deadline=deadline)
