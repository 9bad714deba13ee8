"""
Process-local publish/subscribe channel.

Every subscription owns an asyncio queue and a worker task that drains it,
so publishing never waits on a handler and each subscriber sees every event
exactly once, in publish order.

Usage:
    unsubscribe = score_events.subscribe(SCORE_UPDATED, on_score_updated)
    score_events.publish(SCORE_UPDATED, ScoreUpdated(...))
    await score_events.join()   # tests: wait until handlers ran
    unsubscribe()
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Union

from .constants import SCORE_UPDATED

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Union[None, Awaitable[None]]]


# =============================================================================
# Event payloads
# =============================================================================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ScoreUpdated:
    """A single score was written or deleted."""

    competition_id: int
    segment_id: str
    contestant_id: str
    judge_id: str
    criterion_id: str
    score: Optional[float] = None
    deleted: bool = False
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class ScoresReset:
    """Bulk delete of a competition's scores (pre-judged criteria kept)."""

    competition_id: int
    deleted_count: int
    preserved_criterion_ids: tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=_utcnow)


# =============================================================================
# Channel
# =============================================================================

class _Subscription:
    """One handler bound to one topic, with its own delivery queue."""

    def __init__(self, topic: str, handler: Handler):
        self.topic = topic
        self.handler = handler
        self.queue: asyncio.Queue = asyncio.Queue()
        self.task: Optional[asyncio.Task] = None

    def start(self):
        self.task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self):
        while True:
            event = await self.queue.get()
            try:
                result = self.handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Event handler {self.handler!r} failed on {self.topic}: {e}")
            finally:
                self.queue.task_done()

    def cancel(self):
        if self.task and not self.task.done():
            self.task.cancel()


class EventChannel:
    """
    In-process publish/subscribe bus.

    subscribe() must be called from inside a running event loop; publish()
    may be called from any coroutine or callback on that loop.
    """

    def __init__(self):
        self._subscriptions: dict[str, list[_Subscription]] = {}

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """
        Register a handler for a topic.

        Returns:
            Callable that removes the subscription. Calling it twice is safe.
        """
        subscription = _Subscription(topic, handler)
        subscription.start()
        self._subscriptions.setdefault(topic, []).append(subscription)
        logger.debug(f"Subscribed {handler!r} to {topic}")

        def unsubscribe():
            subscribers = self._subscriptions.get(topic, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
                subscription.cancel()
                logger.debug(f"Unsubscribed {handler!r} from {topic}")

        return unsubscribe

    def publish(self, topic: str, event: Any) -> int:
        """
        Queue an event for every current subscriber of the topic.

        Returns:
            Number of subscribers the event was queued for
        """
        subscribers = list(self._subscriptions.get(topic, []))
        for subscription in subscribers:
            subscription.queue.put_nowait(event)
        return len(subscribers)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscriptions.get(topic, []))

    async def join(self):
        """Wait until every queued event has been handled."""
        for subscribers in list(self._subscriptions.values()):
            for subscription in list(subscribers):
                await subscription.queue.join()

    async def close(self):
        """Cancel all subscriptions. The channel can be reused afterwards."""
        subscriptions = [s for subs in self._subscriptions.values() for s in subs]
        self._subscriptions.clear()
        for subscription in subscriptions:
            subscription.cancel()
        for subscription in subscriptions:
            if subscription.task:
                try:
                    await subscription.task
                except asyncio.CancelledError:
                    pass


# Global channel for score mutations
score_events = EventChannel()


def subscribe_score_updates(handler: Handler) -> Callable[[], None]:
    """Subscribe a handler to SCORE_UPDATED on the global channel."""
    return score_events.subscribe(SCORE_UPDATED, handler)
