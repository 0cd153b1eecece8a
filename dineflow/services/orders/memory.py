"""
In-Memory Order Store Implementation

Keeps orders in a process-local arena with an id→index map. Used in
development mode (STORAGE_BACKEND=memory) to:
    - Run the full order flow without a database
    - Drive the test suite
    - Demo the kitchen display offline

Every method completes without awaiting anything, so on a single event loop
each call is atomic with respect to other requests.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import List, Optional

from dineflow.core.exceptions import OrderNotFound, StoreError
from dineflow.models import OrderStatus
from dineflow.services.orders.base import BaseOrderStore, Order, OrderMutator

logger = logging.getLogger(__name__)


class InMemoryOrderStore(BaseOrderStore):
    """
    Order store backed by a Python list.

    Orders are appended in creation order and looked up through an index
    map; listings sort by order number, highest first.

    Attributes:
        seed: Order number handed to the first order
    """

    def __init__(self, seed: int = 101):
        self.seed = seed
        self._orders: List[Order] = []
        self._index: dict[str, int] = {}
        self._last_number = seed - 1

        logger.info(f"InMemoryOrderStore initialized (seed={seed})")

    @property
    def backend_name(self) -> str:
        return "memory"

    async def allocate_order_number(self) -> int:
        self._last_number += 1
        return self._last_number

    async def insert(self, order: Order) -> Order:
        if order.id in self._index:
            raise StoreError(
                f"Order '{order.id}' already exists",
                {"order_id": order.id},
            )
        self._index[order.id] = len(self._orders)
        self._orders.append(order)
        logger.debug(f"Stored order #{order.order_number} ({order.id})")
        return order

    async def get(self, order_id: str) -> Order:
        position = self._index.get(order_id)
        if position is None:
            raise OrderNotFound(order_id)
        return self._orders[position]

    async def list(self, status: Optional[OrderStatus] = None) -> List[Order]:
        newest_first = sorted(self._orders, key=lambda o: o.order_number, reverse=True)
        if status is None:
            return newest_first
        return [o for o in newest_first if o.status == status]

    async def update(self, order_id: str, mutator: OrderMutator) -> Order:
        position = self._index.get(order_id)
        if position is None:
            raise OrderNotFound(order_id)
        updated = mutator(self._orders[position])
        self._orders[position] = updated
        return updated

    async def health_check(self) -> bool:
        """Memory store is always available."""
        return True
