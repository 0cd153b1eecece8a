"""
Order Lifecycle Engine

Business rules for placing orders and moving them through the kitchen:

    new ──► preparing ──► ready ──► completed
     │          │
     └──────────┴──► cancelled

Every status change in the system goes through ``transition``; there is no
way to set an arbitrary status. Successful creations publish ``new-order``
and successful transitions publish ``order-updated``.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable, Optional

from dineflow.core.exceptions import InvalidOrder, InvalidTransition, StoreError
from dineflow.models import OrderStatus
from dineflow.services.broadcaster import EventBroadcaster, EventKind
from dineflow.services.orders.base import BaseOrderStore, LineItem, Order

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.NEW: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Check the state machine without touching any order."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def calculate_total(items: Iterable[LineItem]) -> int:
    """Exact sum of price × quantity (integer currency units, no rounding)."""
    return sum(item.line_total for item in items)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderLifecycleEngine:
    """
    The only writer of orders.

    Attributes:
        store: Order store (any backend)
        broadcaster: Receives one event per successful write
    """

    def __init__(self, store: BaseOrderStore, broadcaster: EventBroadcaster):
        self.store = store
        self.broadcaster = broadcaster
        self._order_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: defaultdict[str, int] = defaultdict(int)

    # =========================================================================
    # CREATION
    # =========================================================================

    async def create_order(
        self,
        items: Optional[list[LineItem]],
        table_number: int = 0,
        customer_name: str = "Guest",
        notes: str = "",
    ) -> Order:
        """
        Validate, price and persist a new order.

        Args:
            items: Line items with snapshotted name and price
            table_number: Table the QR code belongs to (0 = takeaway)
            customer_name: Name shown on the kitchen ticket
            notes: Free-text instructions for the kitchen

        Returns:
            Order: The stored order, status ``new``

        Raises:
            InvalidOrder: If ``items`` is empty or missing, or a line is invalid
            StoreError: If the store fails
        """
        if not items:
            raise InvalidOrder("Order must have at least one item")
        if table_number < 0:
            raise InvalidOrder(
                "Table number cannot be negative",
                {"table_number": table_number},
            )
        for position, item in enumerate(items):
            if item.price <= 0 or item.quantity <= 0:
                raise InvalidOrder(
                    "Line items need a positive price and quantity",
                    {"line": position, "item_id": item.item_id},
                )

        # Validation is complete before a number is taken
        order_number = await self.store.allocate_order_number()
        now = utc_now()
        order = Order(
            id=uuid.uuid4().hex,
            order_number=order_number,
            table_number=table_number,
            items=tuple(items),
            total=calculate_total(items),
            status=OrderStatus.NEW,
            created_at=now,
            updated_at=now,
            customer_name=customer_name or "Guest",
            notes=notes or "",
        )
        await self.store.insert(order)

        table = f"table {table_number}" if table_number else "takeaway"
        logger.info(f"Order #{order.order_number} placed ({table}, {len(order.items)} item(s), total {order.total})")

        self.broadcaster.publish(EventKind.NEW_ORDER, order)
        return order

    # =========================================================================
    # STATUS TRANSITIONS
    # =========================================================================

    async def transition(self, order_id: str, target: OrderStatus) -> Order:
        """
        Move an order to ``target`` if the state machine allows it.

        Raises:
            OrderNotFound: If the order does not exist
            InvalidTransition: If ``target`` is not reachable from the current status
            StoreError: If the store fails
        """
        target = OrderStatus(target)

        def apply(current: Order) -> Order:
            if not can_transition(current.status, target):
                raise InvalidTransition(current.status.value, target.value)
            return current.with_status(target, utc_now())

        lock = self._order_locks.setdefault(order_id, asyncio.Lock())
        self._lock_users[order_id] += 1
        try:
            async with lock:
                updated = await self.store.update(order_id, apply)
                logger.info(f"Order #{updated.order_number} → {updated.status.value}")
                self.broadcaster.publish(EventKind.ORDER_UPDATED, updated)
        finally:
            self._lock_users[order_id] -= 1
            if not self._lock_users[order_id]:
                del self._lock_users[order_id]
                del self._order_locks[order_id]

        return updated

    # =========================================================================
    # READS
    # =========================================================================

    async def get_order(self, order_id: str) -> Order:
        """Raises OrderNotFound if the id is unknown."""
        return await self.store.get(order_id)

    async def list_orders(self, status: Optional[OrderStatus] = None) -> list[Order]:
        """Newest-first listing; an unavailable store yields an empty list."""
        try:
            return await self.store.list(status)
        except StoreError as e:
            logger.error(f"Order listing degraded to empty result: {e}")
            return []
