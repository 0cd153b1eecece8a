"""
Event Broadcaster Tests

Run with: pytest tests/test_broadcaster.py -v
"""

import json

import pytest

from dineflow.services.broadcaster import (
    KEEPALIVE,
    EventBroadcaster,
    EventKind,
    KeepAlive,
    OrderEvent,
)


@pytest.mark.asyncio
class TestEventDelivery:
    """Test fan-out of lifecycle events to listeners."""

    async def test_subscriber_receives_exactly_one_new_order(self, engine, broadcaster, sample_items):
        subscription = broadcaster.subscribe()

        order = await engine.create_order(sample_items)

        message = await broadcaster.next_message(subscription)
        assert isinstance(message, OrderEvent)
        assert message.kind == EventKind.NEW_ORDER
        assert message.data["id"] == order.id
        assert message.data["order_number"] == order.order_number
        assert message.data["total"] == 250
        assert subscription.queue.empty()

    async def test_late_subscriber_gets_no_replay(self, engine, broadcaster, sample_items):
        await engine.create_order(sample_items)

        late = broadcaster.subscribe()

        assert late.queue.empty()
        assert await broadcaster.next_message(late) is KEEPALIVE

    async def test_every_listener_sees_same_order(self, engine, broadcaster, sample_items):
        first = broadcaster.subscribe()
        second = broadcaster.subscribe()

        a = await engine.create_order(sample_items)
        b = await engine.create_order(sample_items)

        for subscription in (first, second):
            received = [subscription.queue.get_nowait().data["id"] for _ in range(2)]
            assert received == [a.id, b.id]

    async def test_publish_returns_delivered_count(self, engine, broadcaster, sample_items):
        broadcaster.subscribe()
        broadcaster.subscribe()
        order = await engine.create_order(sample_items)

        assert broadcaster.publish(EventKind.ORDER_UPDATED, order) == 2

    async def test_full_listener_is_skipped(self, engine, sample_items):
        """A display that stops reading loses events but never blocks orders."""
        broadcaster = EventBroadcaster(queue_size=1)
        engine.broadcaster = broadcaster
        slow = broadcaster.subscribe()

        first = await engine.create_order(sample_items)
        second = await engine.create_order(sample_items)

        assert slow.dropped == 1
        assert slow.queue.qsize() == 1
        assert slow.queue.get_nowait().data["id"] == first.id
        assert second.order_number == first.order_number + 1

    async def test_publish_without_listeners(self, engine, sample_items):
        order = await engine.create_order(sample_items)

        assert EventBroadcaster().publish(EventKind.NEW_ORDER, order) == 0

    async def test_keepalive_after_quiet_interval(self, broadcaster):
        subscription = broadcaster.subscribe()

        message = await broadcaster.next_message(subscription)

        assert message is KEEPALIVE
        assert isinstance(message, KeepAlive)

    async def test_listen_unsubscribes_when_closed(self, broadcaster):
        subscription = broadcaster.subscribe()
        stream = broadcaster.listen(subscription)

        assert await stream.__anext__() is KEEPALIVE
        await stream.aclose()

        assert broadcaster.listener_count == 0

    async def test_listen_yields_events_in_publish_order(self, engine, broadcaster, sample_items):
        subscription = broadcaster.subscribe()
        stream = broadcaster.listen(subscription)

        order = await engine.create_order(sample_items)
        await engine.transition(order.id, "preparing")

        kinds = [(await stream.__anext__()).kind for _ in range(2)]
        await stream.aclose()

        assert kinds == [EventKind.NEW_ORDER, EventKind.ORDER_UPDATED]


class TestSubscriptions:
    """Test the listener registry."""

    def test_subscribe_and_unsubscribe(self):
        broadcaster = EventBroadcaster()
        a = broadcaster.subscribe()
        b = broadcaster.subscribe()

        assert broadcaster.listener_count == 2
        assert a.id != b.id

        broadcaster.unsubscribe(a)
        assert broadcaster.listener_count == 1

    def test_unsubscribe_is_idempotent(self):
        broadcaster = EventBroadcaster()
        subscription = broadcaster.subscribe()

        broadcaster.unsubscribe(subscription)
        broadcaster.unsubscribe(subscription)

        assert broadcaster.listener_count == 0


class TestEncoding:
    """Test Server-Sent Events framing."""

    def test_event_frame(self):
        event = OrderEvent(kind=EventKind.NEW_ORDER, data={"id": "abc", "order_number": 101})

        frame = event.encode()

        assert frame.startswith("event: new-order\ndata: ")
        assert frame.endswith("\n\n")
        payload = frame.split("data: ", 1)[1].strip()
        assert json.loads(payload) == {"id": "abc", "order_number": 101}

    def test_keepalive_is_comment(self):
        assert KEEPALIVE.encode() == ":heartbeat\n\n"

