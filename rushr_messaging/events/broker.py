"""In-process publish/subscribe for conversation events.

Two kinds of consumers:

- Subscriptions: one bounded queue per subscriber, scoped to a single
  conversation. Publishing never waits on a slow subscriber; when its
  queue is full the event is dropped for that subscriber.
- Listeners: coroutines called for every event of every conversation.
  Each call runs as its own background task, so publishing never waits
  on a listener. A failing listener is logged; it never affects the
  publisher or other listeners. `drain` waits for calls still in flight.
"""

import asyncio
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Optional, Set
from uuid import UUID

from rushr_messaging import config
from rushr_messaging.events.schemas import BaseEvent
from rushr_messaging.logging_config import get_logger

logger = get_logger(__name__)

Listener = Callable[[BaseEvent], Awaitable[None]]


class Subscription:
    """A live feed of events for one conversation."""

    def __init__(
        self, broker: "EventBroker", conversation_id: UUID, queue: "asyncio.Queue[BaseEvent]"
    ):
        self.broker = broker
        self.conversation_id = conversation_id
        self.queue = queue
        self.closed = False

    async def get(self) -> BaseEvent:
        """Wait for the next event."""
        return await self.queue.get()

    def close(self) -> None:
        if not self.closed:
            self.broker._unsubscribe(self)
            self.closed = True

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> BaseEvent:
        if self.closed:
            raise StopAsyncIteration
        return await self.get()


class EventBroker:
    """Fan-out of domain events to subscriptions and listeners."""

    def __init__(self, queue_size: Optional[int] = None):
        self.queue_size = queue_size or config.EVENT_QUEUE_SIZE
        self._subscriptions: Dict[UUID, Set[Subscription]] = defaultdict(set)
        self._listeners: List[Listener] = []
        self._pending: Set["asyncio.Task[None]"] = set()

    def subscribe(self, conversation_id: UUID) -> Subscription:
        """Open a subscription for one conversation's events."""
        queue: "asyncio.Queue[BaseEvent]" = asyncio.Queue(maxsize=self.queue_size)
        subscription = Subscription(self, conversation_id, queue)
        self._subscriptions[conversation_id].add(subscription)
        logger.debug("subscription_opened", conversation_id=str(conversation_id))
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._subscriptions.get(subscription.conversation_id)
        if subscribers is None:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscriptions[subscription.conversation_id]
        logger.debug(
            "subscription_closed", conversation_id=str(subscription.conversation_id)
        )

    def subscriber_count(self, conversation_id: UUID) -> int:
        return len(self._subscriptions.get(conversation_id, ()))

    def add_listener(self, listener: Listener) -> None:
        """Register a coroutine called for every published event."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def publish(self, event: BaseEvent) -> None:
        """Deliver an event. Never raises on consumer failure."""
        for subscription in list(self._subscriptions.get(event.conversation_id, ())):
            try:
                subscription.queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(
                    "event_dropped",
                    event_type=event.event_type.value,
                    conversation_id=str(event.conversation_id),
                )

        for listener in list(self._listeners):
            task = asyncio.create_task(self._call_listener(listener, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _call_listener(self, listener: Listener, event: BaseEvent) -> None:
        try:
            await listener(event)
        except Exception:
            logger.exception(
                "event_listener_failed",
                event_type=event.event_type.value,
                conversation_id=str(event.conversation_id),
            )

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for listener calls still in flight.

        Calls still running after ``timeout`` seconds are cancelled.
        """
        if not self._pending:
            return
        pending = list(self._pending)
        _, not_done = await asyncio.wait(pending, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            logger.warning("event_listeners_cancelled", count=len(not_done))
            await asyncio.gather(*not_done, return_exceptions=True)


# Process-wide broker shared by the API and its WebSocket subscribers
broker = EventBroker()


def get_broker() -> EventBroker:
    """Dependency to get the event broker."""
    return broker
