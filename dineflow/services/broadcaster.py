"""
Event Broadcaster

Fans order lifecycle events out to every connected kitchen display.

Each listener owns a bounded asyncio.Queue. ``publish`` drops the event into
every queue with ``put_nowait`` and never awaits, so a slow or dead listener
can not hold up order creation or a status change. The transport layer
(the SSE endpoint) drains a listener's queue through ``listen``.

Delivery is best effort: no persistence, no replay, no acknowledgement.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Optional

from dineflow.services.orders.base import Order

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Lifecycle events pushed to listeners."""
    NEW_ORDER = "new-order"
    ORDER_UPDATED = "order-updated"


@dataclass(frozen=True)
class OrderEvent:
    """A lifecycle event with its order snapshot."""
    kind: EventKind
    data: dict

    def encode(self) -> str:
        """Render as a Server-Sent Events frame."""
        return f"event: {self.kind.value}\ndata: {json.dumps(self.data)}\n\n"


@dataclass(frozen=True)
class KeepAlive:
    """Payload-less liveness signal; never a domain event."""

    def encode(self) -> str:
        # SSE comment line, ignored by EventSource clients
        return ":heartbeat\n\n"


KEEPALIVE = KeepAlive()


@dataclass(eq=False)
class Subscription:
    """Handle returned by ``subscribe``; identifies one listener."""
    queue: asyncio.Queue
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    dropped: int = 0


class EventBroadcaster:
    """
    Registry of live listeners.

    Attributes:
        keepalive_interval: Seconds of silence before a listener gets KEEPALIVE
        queue_size: Maximum undelivered events buffered per listener
    """

    def __init__(self, keepalive_interval: float = 30.0, queue_size: int = 100):
        self.keepalive_interval = keepalive_interval
        self.queue_size = queue_size
        self._subscriptions: dict[str, Subscription] = {}

        logger.info(
            f"EventBroadcaster initialized "
            f"(keepalive={keepalive_interval}s, queue_size={queue_size})"
        )

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        """Register a new listener and return its handle."""
        subscription = Subscription(queue=asyncio.Queue(maxsize=self.queue_size))
        self._subscriptions[subscription.id] = subscription
        logger.info(f"Listener {subscription.id} connected ({self.listener_count} total)")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a listener. Safe to call more than once."""
        if self._subscriptions.pop(subscription.id, None) is not None:
            logger.info(f"Listener {subscription.id} disconnected ({self.listener_count} total)")

    def publish(self, kind: EventKind, order: Order) -> int:
        """
        Push an event to every registered listener.

        Listeners whose queue is full or that fail are skipped and logged.

        Returns:
            int: Number of listeners the event was queued for
        """
        event = OrderEvent(kind=kind, data=order.to_dict())
        delivered = 0

        # Copy: a listener may unsubscribe while we iterate
        for subscription in list(self._subscriptions.values()):
            try:
                subscription.queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                subscription.dropped += 1
                logger.warning(
                    f"Listener {subscription.id} is not keeping up; "
                    f"dropped {kind.value} for order #{order.order_number}"
                )
            except Exception as e:
                logger.error(f"Failed to queue {kind.value} for listener {subscription.id}: {e}")

        logger.debug(f"Published {kind.value} for order #{order.order_number} to {delivered} listener(s)")
        return delivered

    async def next_message(self, subscription: Subscription, timeout: Optional[float] = None):
        """
        Wait for the next event for a listener.

        Returns KEEPALIVE if nothing arrives within ``timeout`` (defaults to
        the keep-alive interval).
        """
        wait = self.keepalive_interval if timeout is None else timeout
        try:
            return await asyncio.wait_for(subscription.queue.get(), timeout=wait)
        except asyncio.TimeoutError:
            return KEEPALIVE

    async def listen(self, subscription: Subscription) -> AsyncIterator:
        """
        Yield events for one listener, in publish order, interleaved with
        keep-alives during quiet periods. Runs until the consumer stops
        iterating; the listener is unsubscribed on exit.
        """
        try:
            while True:
                yield await self.next_message(subscription)
        finally:
            self.unsubscribe(subscription)
