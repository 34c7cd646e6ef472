import asyncio
from unittest.mock import AsyncMock
from uuid import uuid4

from rushr_messaging.events.broker import EventBroker
from rushr_messaging.events.schemas import EventType, TypingChangedEvent


def typing_event(conversation_id, is_typing=True) -> TypingChangedEvent:
    return TypingChangedEvent(
        conversation_id=conversation_id, user_id=uuid4(), is_typing=is_typing
    )


class TestEventBroker:
    """Unit tests for EventBroker fan-out."""

    async def test_subscriber_receives_its_conversation_only(self) -> None:
        broker = EventBroker(queue_size=5)
        conversation_id = uuid4()
        event = typing_event(conversation_id)

        async with broker.subscribe(conversation_id) as subscription:
            await broker.publish(typing_event(uuid4()))
            await broker.publish(event)

            received = await asyncio.wait_for(subscription.get(), timeout=1)

            assert received is event
            assert subscription.queue.empty()

    async def test_every_subscriber_gets_a_copy(self) -> None:
        broker = EventBroker(queue_size=5)
        conversation_id = uuid4()
        first = broker.subscribe(conversation_id)
        second = broker.subscribe(conversation_id)

        await broker.publish(typing_event(conversation_id))

        assert first.queue.qsize() == 1
        assert second.queue.qsize() == 1
        first.close()
        second.close()

    async def test_full_queue_drops_without_blocking(self) -> None:
        broker = EventBroker(queue_size=2)
        conversation_id = uuid4()
        slow = broker.subscribe(conversation_id)
        events = [typing_event(conversation_id) for _ in range(3)]

        for event in events:
            await asyncio.wait_for(broker.publish(event), timeout=1)

        assert slow.queue.qsize() == 2
        assert await slow.get() is events[0]
        assert await slow.get() is events[1]
        slow.close()

    async def test_close_unsubscribes(self) -> None:
        broker = EventBroker(queue_size=5)
        conversation_id = uuid4()

        async with broker.subscribe(conversation_id) as subscription:
            assert broker.subscriber_count(conversation_id) == 1

        assert broker.subscriber_count(conversation_id) == 0
        # Closing twice is harmless
        subscription.close()
        await broker.publish(typing_event(conversation_id))
        assert subscription.queue.empty()

    async def test_iteration_stops_once_closed(self) -> None:
        broker = EventBroker(queue_size=5)
        subscription = broker.subscribe(uuid4())
        subscription.close()

        received = [event async for event in subscription]

        assert received == []

    async def test_listeners_see_every_conversation(self) -> None:
        broker = EventBroker(queue_size=5)
        listener = AsyncMock()
        broker.add_listener(listener)

        await broker.publish(typing_event(uuid4()))
        await broker.publish(typing_event(uuid4(), is_typing=False))
        await broker.drain()

        assert listener.await_count == 2
        assert listener.await_args.args[0].event_type == EventType.TYPING_CHANGED

    async def test_failing_listener_is_isolated(self) -> None:
        broker = EventBroker(queue_size=5)
        conversation_id = uuid4()
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        healthy = AsyncMock()
        broker.add_listener(failing)
        broker.add_listener(healthy)
        subscription = broker.subscribe(conversation_id)

        await broker.publish(typing_event(conversation_id))
        await broker.drain()

        failing.assert_awaited_once()
        healthy.assert_awaited_once()
        assert subscription.queue.qsize() == 1
        subscription.close()

    async def test_remove_listener(self) -> None:
        broker = EventBroker(queue_size=5)
        listener = AsyncMock()
        broker.add_listener(listener)
        broker.remove_listener(listener)
        broker.remove_listener(listener)

        await broker.publish(typing_event(uuid4()))
        await broker.drain()

        listener.assert_not_awaited()

    async def test_slow_listener_does_not_delay_publish(self) -> None:
        broker = EventBroker(queue_size=5)
        release = asyncio.Event()
        seen = []

        async def slow_listener(event) -> None:
            await release.wait()
            seen.append(event)

        broker.add_listener(slow_listener)
        event = typing_event(uuid4())

        await asyncio.wait_for(broker.publish(event), timeout=1)

        assert seen == []
        assert broker.pending_count == 1
        release.set()
        await broker.drain()
        assert seen == [event]
        assert broker.pending_count == 0

    async def test_drain_cancels_listeners_past_timeout(self) -> None:
        broker = EventBroker(queue_size=5)
        cancelled = asyncio.Event()

        async def stuck_listener(event) -> None:
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        broker.add_listener(stuck_listener)
        await broker.publish(typing_event(uuid4()))

        await asyncio.wait_for(broker.drain(timeout=0.05), timeout=1)

        assert cancelled.is_set()
        assert broker.pending_count == 0
